"""
Archive-level helpers.

Read pieces straight out of archive bytes without building a Bundle.
Every helper sniffs the archive version from its manifest and uses the
matching path layout, so the same call works on legacy and current
archives (fonts, themes, state machines and global inputs only exist
in current ones).

    manifest = get_manifest(archive)
    ok, err  = validate_archive(archive)
    bull     = get_animation(archive, "bull", inline_assets=True)
    images   = get_images(archive)          # {file name: data URL}
"""

from __future__ import annotations

import json
from typing import Any, Callable, Optional

from lottie_bundle.archive.parser import read_manifest
from lottie_bundle.archive.zipcodec import ArchiveCodec
from lottie_bundle.core.codec import AssetCodec
from lottie_bundle.core.errors import BundleError, FetchError, MalformedArchiveError
from lottie_bundle.core.vocabulary import (
    FONT_ASSET_DIR,
    FONT_ORIGIN_URL,
    ArchiveLayout,
    EntryKind,
    FormatVersion,
    is_audio_asset,
    is_font_definition,
    is_image_asset,
    layout_for,
)
from lottie_bundle.schemas.manifest import validate_manifest

NameFilter = Callable[[str], bool]

_codec = AssetCodec()
_archive = ArchiveCodec()


def _open(data: bytes) -> tuple[dict[str, bytes], ArchiveLayout]:
    entries = _archive.unpack(data)
    manifest = read_manifest(entries)
    return entries, layout_for(FormatVersion.from_manifest(manifest))


def _select(entries: dict[str, bytes], layout: ArchiveLayout, kind: EntryKind,
            name_filter: Optional[NameFilter] = None) -> dict[str, bytes]:
    selected = {}
    for path, raw in entries.items():
        entry_kind, name = layout.classify(path)
        if entry_kind == kind and (name_filter is None or name_filter(name)):
            selected[name] = raw
    return selected


def _json(raw: bytes, what: str) -> Any:
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedArchiveError(f"Invalid {what}: {e}")


def _data_urls(selected: dict[str, bytes]) -> dict[str, str]:
    return {name: _codec.encode(raw, _codec.mime_for_file(name, raw)) for name, raw in selected.items()}


# ── Manifest ────────────────────────────────────────────────

def get_manifest(data: bytes) -> Optional[dict[str, Any]]:
    """The raw manifest of an archive, or None if it has no manifest.json."""
    try:
        return read_manifest(_archive.unpack(data))
    except MalformedArchiveError:
        return None


def validate_archive(data: Any) -> tuple[bool, Optional[str]]:
    """Check an archive's manifest without raising.

    Returns:
        (True, None) on success, else (False, reason).
    """
    if not isinstance(data, (bytes, bytearray)):
        return False, "Archive data must be bytes."
    try:
        manifest = read_manifest(_archive.unpack(bytes(data)))
        validate_manifest(manifest)
    except BundleError as e:
        return False, e.message
    return True, None


# ── Animations ──────────────────────────────────────────────

def _embed(entries: dict[str, bytes], layout: ArchiveLayout, animations: dict[str, dict]) -> None:
    images = _data_urls(_select(entries, layout, EntryKind.IMAGE))
    audio = _data_urls(_select(entries, layout, EntryKind.AUDIO))
    for animation in animations.values():
        for asset in animation.get("assets") or []:
            if is_image_asset(asset):
                data_url = images.get(asset.get("p"))
            elif is_audio_asset(asset):
                data_url = audio.get(asset.get("p"))
            else:
                continue
            if data_url:
                asset["p"] = data_url
                asset["u"] = ""
                asset["e"] = 1

    if not layout.packs_fonts:
        return
    fonts = _data_urls(_select(entries, layout, EntryKind.FONT))
    for animation in animations.values():
        for font in (animation.get("fonts") or {}).get("list") or []:
            if not is_font_definition(font) or not font["fPath"].startswith(FONT_ASSET_DIR):
                continue
            data_url = fonts.get(font["fPath"][len(FONT_ASSET_DIR):])
            if data_url:
                font["fPath"] = data_url
                font["origin"] = FONT_ORIGIN_URL


def get_animations(data: bytes, inline_assets: bool = False,
                   name_filter: Optional[NameFilter] = None) -> dict[str, dict]:
    """{animation id: Lottie JSON}, optionally with assets embedded."""
    entries, layout = _open(data)
    animations = {
        animation_id: _json(raw, f"animation '{animation_id}'")
        for animation_id, raw in _select(entries, layout, EntryKind.ANIMATION, name_filter).items()
    }
    if inline_assets:
        _embed(entries, layout, animations)
    return animations


def get_animation(data: bytes, animation_id: str, inline_assets: bool = False) -> Optional[dict]:
    return get_animations(data, inline_assets, lambda name: name == animation_id).get(animation_id)


# ── Images, audio & fonts ──────────────────────────────────

def get_images(data: bytes, name_filter: Optional[NameFilter] = None) -> dict[str, str]:
    """{file name: data URL} for every image in the archive."""
    entries, layout = _open(data)
    return _data_urls(_select(entries, layout, EntryKind.IMAGE, name_filter))


def get_image(data: bytes, file_name: str) -> Optional[str]:
    return get_images(data, lambda name: name == file_name).get(file_name)


def get_all_audio(data: bytes, name_filter: Optional[NameFilter] = None) -> dict[str, str]:
    entries, layout = _open(data)
    return _data_urls(_select(entries, layout, EntryKind.AUDIO, name_filter))


def get_audio(data: bytes, file_name: str) -> Optional[str]:
    return get_all_audio(data, lambda name: name == file_name).get(file_name)


def get_fonts(data: bytes, name_filter: Optional[NameFilter] = None) -> dict[str, str]:
    """{file name: data URL} for every packaged font (current archives only)."""
    entries, layout = _open(data)
    if not layout.packs_fonts:
        return {}
    return _data_urls(_select(entries, layout, EntryKind.FONT, name_filter))


def get_font(data: bytes, file_name: str) -> Optional[str]:
    return get_fonts(data, lambda name: name == file_name).get(file_name)


# ── Themes, state machines & global inputs ─────────────────

def get_themes(data: bytes, name_filter: Optional[NameFilter] = None) -> dict[str, dict]:
    entries, layout = _open(data)
    if not layout.packs_themes:
        return {}
    return {
        theme_id: _json(raw, f"theme '{theme_id}'")
        for theme_id, raw in _select(entries, layout, EntryKind.THEME, name_filter).items()
    }


def get_theme(data: bytes, theme_id: str) -> Optional[dict]:
    return get_themes(data, lambda name: name == theme_id).get(theme_id)


def get_state_machines(data: bytes, name_filter: Optional[NameFilter] = None) -> dict[str, dict]:
    entries, layout = _open(data)
    if not layout.packs_themes:
        return {}
    return {
        sm_id: _json(raw, f"state machine '{sm_id}'")
        for sm_id, raw in _select(entries, layout, EntryKind.STATE_MACHINE, name_filter).items()
    }


def get_state_machine(data: bytes, state_machine_id: str) -> Optional[dict]:
    return get_state_machines(data, lambda name: name == state_machine_id).get(state_machine_id)


def get_all_global_inputs(data: bytes, name_filter: Optional[NameFilter] = None) -> dict[str, dict]:
    entries, layout = _open(data)
    if not layout.packs_themes:
        return {}
    return {
        inputs_id: _json(raw, f"global inputs '{inputs_id}'")
        for inputs_id, raw in _select(entries, layout, EntryKind.GLOBAL_INPUTS, name_filter).items()
    }


def get_global_inputs(data: bytes, global_inputs_id: str) -> Optional[dict]:
    return get_all_global_inputs(data, lambda name: name == global_inputs_id).get(global_inputs_id)


# ── Loading ─────────────────────────────────────────────────

def load_from_bytes(data: bytes) -> bytes:
    """Return ``data`` if it is a valid archive, else raise MalformedArchiveError."""
    ok, error = validate_archive(data)
    if not ok:
        raise MalformedArchiveError(error)
    return bytes(data)


async def load_from_url(url: str, codec: Optional[AssetCodec] = None) -> bytes:
    """Download and validate an archive.

    Raises:
        FetchError:            the url is invalid, unreachable, or does not
                               serve application/zip.
        MalformedArchiveError: the download is not a valid archive.
    """
    codec = codec or _codec
    resp = await codec.fetch_response(url)
    content_type = resp.headers.get("content-type", "")
    if "application/zip" not in content_type:
        raise FetchError(url, f"invalid content type {content_type!r}, expected application/zip")
    return load_from_bytes(resp.content)
