"""
Build pipeline.

Bundle.build() runs these phases in order:

    resolve_urls      fetch url-sourced animations and themes
    extract_assets    move inline (data URL) images, audio and fonts out
                      of each animation's JSON into registry-owned assets
    rename_assets     image_N / audio_N / font_N numbering (multi-animation only)
    run_plugins       parallel plugins together, then sequential ones
    check_references  every state machine's animations must exist

Every phase is safe to re-run: a second build over an already-built
bundle produces the same registry and the same names.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Iterable

from lottie_bundle.core.entities import Asset, AudioAsset, FontAsset, ImageAsset
from lottie_bundle.core.errors import DanglingReferenceError
from lottie_bundle.core.registry import reference_path
from lottie_bundle.core.vocabulary import (
    AUDIO_ASSET_DIR,
    FONT_ORIGIN_URL,
    IMAGE_ASSET_DIR,
    is_audio_asset,
    is_image_asset,
)

if TYPE_CHECKING:
    from lottie_bundle.bundle import Bundle
    from lottie_bundle.plugins import BundlePlugin

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# URL resolution
# ─────────────────────────────────────────────────────────────

async def resolve_urls(bundle: "Bundle") -> None:
    """Fetch every animation and theme that only has a url.

    Raises:
        FetchError: on the first fetch that fails; nothing after it is fetched.
    """
    registry = bundle.registry
    for animation in registry.animations:
        if not animation.resolved:
            logger.info(f"Resolving animation '{animation.id}' from {animation.url}")
            data = await bundle.codec.fetch_json(animation.url)
            registry.replace_animation(animation.update(data=data))

    for theme in registry.themes:
        if not theme.resolved:
            logger.info(f"Resolving theme '{theme.id}' from {theme.url}")
            data = await bundle.codec.fetch_json(theme.url)
            registry.replace_theme(theme.update(data=data))


# ─────────────────────────────────────────────────────────────
# Asset extraction
# ─────────────────────────────────────────────────────────────

def extract_assets(bundle: "Bundle", animation_id: str) -> list[Asset]:
    """Pull inline assets out of one animation's data.

    Each embedded asset whose ``p`` is a data URL becomes an owned
    ImageAsset/AudioAsset named ``<asset id>.<ext>``. The JSON entry is
    rewritten to point at that file (``p`` = file name, ``u`` = asset
    directory, ``e`` = 0). Entries that are already external are left
    alone, so extraction never runs twice on the same entry.

    Layouts that package fonts also extract ``fonts.list`` entries whose
    ``fPath`` is a data URL into FontAssets named ``<fName>.<ext>``;
    ``fPath`` becomes ``/f/<file name>`` and ``origin`` becomes 3.

    Returns:
        The newly created assets, in data order.
    """
    registry = bundle.registry
    codec = bundle.codec
    animation = registry.get_animation(animation_id)
    extracted: list[Asset] = []

    for entry in animation.lottie_assets:
        if is_image_asset(entry):
            cls, directory = ImageAsset, IMAGE_ASSET_DIR
        elif is_audio_asset(entry):
            cls, directory = AudioAsset, AUDIO_ASSET_DIR
        else:
            continue

        data_url = entry.get("p")
        if not codec.is_data_url(data_url):
            continue

        asset_id = str(entry.get("id") or f"{cls.kind}_{len(extracted)}")
        file_name = f"{asset_id}.{codec.detect_extension(data_url)}"
        asset = cls(id=asset_id, file_name=file_name, data=data_url)

        entry["p"] = file_name
        entry["u"] = directory
        entry["e"] = 0

        registry.attach_asset(animation_id, asset)
        extracted.append(asset)
        logger.debug(f"Extracted {asset.kind} '{file_name}' from animation '{animation_id}'")

    if bundle.layout.packs_fonts:
        extracted.extend(_extract_fonts(bundle, animation_id))

    return extracted


def _extract_fonts(bundle: "Bundle", animation_id: str) -> list[FontAsset]:
    # fonts.list entries: fPath data URL → /f/<fName>.<ext>, origin 3
    registry = bundle.registry
    codec = bundle.codec
    extracted: list[FontAsset] = []

    for font in registry.get_animation(animation_id).font_definitions:
        data_url = font["fPath"]
        if not codec.is_data_url(data_url):
            continue

        asset_id = str(font.get("fName") or font.get("fFamily") or f"font_{len(extracted)}")
        stem = asset_id.replace("/", "_").replace(" ", "_")
        file_name = f"{stem}.{codec.detect_extension(data_url)}"
        asset = FontAsset(id=asset_id, file_name=file_name, data=data_url)

        font["fPath"] = reference_path("font", file_name)
        font["origin"] = FONT_ORIGIN_URL

        registry.attach_asset(animation_id, asset)
        extracted.append(asset)
        logger.debug(f"Extracted font '{file_name}' from animation '{animation_id}'")

    return extracted


def embed_assets(bundle: "Bundle", animation_id: str, data: dict) -> dict:
    """Embed owned assets back into ``data`` (a copy of the animation JSON).

    Entries whose ``p`` names an owned asset get ``p`` = data URL,
    ``u`` = "" and ``e`` = 1. Font definitions whose ``fPath`` names an
    owned font get ``fPath`` = data URL and ``origin`` = 3. Assets must
    already hold their data URL.
    """
    registry = bundle.registry
    owned = {
        "image": {a.file_name: a for a in registry.images_of(animation_id)},
        "audio": {a.file_name: a for a in registry.audio_of(animation_id)},
    }
    for entry in data.get("assets") or []:
        if is_image_asset(entry):
            asset = owned["image"].get(entry.get("p"))
        elif is_audio_asset(entry):
            asset = owned["audio"].get(entry.get("p"))
        else:
            continue
        if asset is not None and asset.data is not None:
            entry["p"] = asset.data
            entry["u"] = ""
            entry["e"] = 1

    fonts = {reference_path("font", a.file_name): a for a in registry.fonts_of(animation_id)}
    listed = (data.get("fonts") or {}).get("list") or []
    for font in listed:
        asset = fonts.get(font.get("fPath")) if isinstance(font, dict) else None
        if asset is not None and asset.data is not None:
            font["fPath"] = asset.data
            font["origin"] = FONT_ORIGIN_URL
    return data


# ─────────────────────────────────────────────────────────────
# Renaming
# ─────────────────────────────────────────────────────────────

def _numbered(bundle: "Bundle", kind: str, prefix: str) -> list[tuple[Asset, str]]:
    registry = bundle.registry
    animations = registry.animations
    size = sum(len(registry.assets_of(a.id, kind)) for a in animations)

    renames: list[tuple[Asset, str]] = []
    for animation in reversed(animations):
        for asset in reversed(registry.assets_of(animation.id, kind)):
            ext = asset.file_name.rsplit(".", 1)[-1] if "." in asset.file_name else "png"
            renames.append((asset, f"{prefix}_{size}.{ext}"))
            size -= 1
    return renames


def rename_assets(bundle: "Bundle") -> None:
    """Give every asset a bundle-unique ``image_N`` / ``audio_N`` / ``font_N`` file name.

    Only runs when the bundle holds more than one animation, since
    independently authored animations routinely reuse asset ids. One
    counter per kind starts at the total owned count and counts down
    while walking animations last to first and each animation's assets
    last to first, so the numbering is a pure function of insertion
    order.
    """
    if len(bundle.registry.animations) <= 1:
        return
    renames = (
        _numbered(bundle, "image", "image")
        + _numbered(bundle, "audio", "audio")
        + _numbered(bundle, "font", "font")
    )
    bundle.registry.rename_assets(renames)
    logger.debug(f"Renamed {len(renames)} asset(s)")


# ─────────────────────────────────────────────────────────────
# Plugins
# ─────────────────────────────────────────────────────────────

async def run_plugins(bundle: "Bundle", plugins: Iterable["BundlePlugin"]) -> None:
    """Run parallel plugins concurrently, then sequential ones in order.

    Every parallel plugin is awaited before the first sequential plugin
    starts. If a parallel plugin fails, the others still settle before
    the first error is raised.
    """
    plugins = list(plugins)
    parallel = [p for p in plugins if getattr(p, "parallel", False)]
    sequential = [p for p in plugins if not getattr(p, "parallel", False)]

    if parallel:
        results = await asyncio.gather(
            *(p.on_build(bundle) for p in parallel), return_exceptions=True,
        )
        for plugin, result in zip(parallel, results):
            if isinstance(result, BaseException):
                logger.error(f"Plugin {plugin!r} failed: {result}")
                raise result

    for plugin in sequential:
        logger.debug(f"Running plugin {plugin!r}")
        await plugin.on_build(bundle)


# ─────────────────────────────────────────────────────────────
# Reference checks
# ─────────────────────────────────────────────────────────────

def check_references(bundle: "Bundle") -> None:
    """Every animation a state machine plays must be in the bundle.

    Raises:
        DanglingReferenceError: for the first missing animation id.
    """
    registry = bundle.registry
    for state_machine in registry.state_machines:
        for animation_id in state_machine.animation_ids:
            if registry.get_animation(animation_id) is None:
                raise DanglingReferenceError(animation_id, f"State machine '{state_machine.id}'")
