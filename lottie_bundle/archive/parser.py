"""
Container parser.

Turns archive bytes back into a populated Bundle:

    1. unpack; read and validate manifest.json first
    2. route every other entry by path:
         animation JSON          → registry (must be listed in the manifest)
         image / audio / font    → temporary pool (owners not known yet)
         theme / machine / input → registry, if listed in the manifest
         anything else           → ignored
    3. scope themes as the manifest says
    4. link pass: attach each pooled asset to every animation whose
       embedded reference points at it

Step 4 is deferred because archive order does not promise animations
come before their assets.

Linking rule: a reference (an image/audio entry's ``p``, or a font's
``fPath``) links to the pooled file it names exactly. Only a reference
that names no pooled file of its kind falls back to the pooled file
with the longest stem contained in it, as other dotLottie writers
expect; that reference is then rewritten to the file it matched.
``strict_links=True`` disables the fallback. Legacy images always link
exactly.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from lottie_bundle.archive.zipcodec import ArchiveCodec
from lottie_bundle.core.codec import AssetCodec
from lottie_bundle.core.entities import (
    Animation,
    Asset,
    AudioAsset,
    FontAsset,
    GlobalInputs,
    ImageAsset,
    StateMachine,
    Theme,
)
from lottie_bundle.core.errors import DanglingReferenceError, MalformedArchiveError
from lottie_bundle.core.registry import reference_path, reference_slots
from lottie_bundle.core.vocabulary import EntryKind, FormatVersion, MANIFEST_PATH, layout_for
from lottie_bundle.schemas.manifest import ManifestV1, ManifestV2, validate_manifest

if TYPE_CHECKING:
    from lottie_bundle.bundle import Bundle

logger = logging.getLogger(__name__)


_ASSET_CLASSES = {"image": ImageAsset, "audio": AudioAsset, "font": FontAsset}

_POOLED_KINDS = {EntryKind.IMAGE: "image", EntryKind.AUDIO: "audio", EntryKind.FONT: "font"}


@dataclass
class _Pooled:
    """An image, audio or font entry waiting for its owners."""
    kind:      str
    file_name: str
    data_url:  str
    asset:     Optional[Asset] = None

    @property
    def stem(self) -> str:
        return self.file_name.rsplit(".", 1)[0] if "." in self.file_name else self.file_name

    @property
    def reference(self) -> str:
        return reference_path(self.kind, self.file_name)


def _load_json(raw: bytes, what: str) -> Any:
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedArchiveError(f"Invalid {what}: {e}")


def read_manifest(entries: dict[str, bytes]) -> dict[str, Any]:
    """Parse manifest.json out of unpacked entries.

    Raises:
        MalformedArchiveError: if the entry is absent or not valid JSON.
    """
    raw = entries.get(MANIFEST_PATH)
    if raw is None:
        raise MalformedArchiveError("Invalid buffer: manifest.json not found in archive.")
    manifest = _load_json(raw, "manifest")
    if not isinstance(manifest, dict):
        raise MalformedArchiveError("Invalid manifest: expected a JSON object.")
    return manifest


def _animation_fields(model: "ManifestV1 | ManifestV2", animation_id: str) -> dict[str, Any]:
    """Entity fields for one animation, taken from its manifest record."""
    record = next(a for a in model.animations if a.id == animation_id)
    if isinstance(model, ManifestV2):
        initial = model.initial.animation if model.initial else None
        return {
            "name":           record.name,
            "initial_theme":  record.initial_theme,
            "background":     record.background,
            "default_active": initial == animation_id,
        }
    return {
        "default_active": model.active_animation_id == animation_id,
        "autoplay":       record.autoplay,
        "loop":           record.loop,
        "speed":          record.speed,
        "direction":      record.direction,
        "play_mode":      record.play_mode,
        "hover":          record.hover,
        "intermission":   record.intermission,
        "theme_color":    record.theme_color,
    }


def parse(
    data: bytes,
    *,
    codec: Optional[AssetCodec] = None,
    archive_codec: Optional[ArchiveCodec] = None,
    strict_links: bool = False,
    **bundle_options,
) -> "Bundle":
    """Parse archive bytes into a new Bundle of the archive's own version.

    Raises:
        MalformedArchiveError:  manifest missing or unparsable, bad zip,
                                or an animation entry that is not JSON.
        DanglingReferenceError: an animation entry absent from the manifest.
        SchemaValidationError:  an invalid theme, state machine or global
                                inputs document.
    """
    from lottie_bundle.bundle import Bundle

    codec = codec or AssetCodec()
    archive_codec = archive_codec or ArchiveCodec()

    entries = archive_codec.unpack(data)
    manifest = read_manifest(entries)
    version = FormatVersion.from_manifest(manifest)
    model = validate_manifest(manifest, version)
    layout = layout_for(version)

    bundle = Bundle(
        version=version,
        codec=codec,
        archive_codec=archive_codec,
        generator=model.generator,
        **bundle_options,
    )
    if isinstance(model, ManifestV1):
        bundle.author = model.author
        bundle.description = model.description
        bundle.keywords = model.keywords
        bundle.revision = model.revision
        bundle.custom = dict(model.custom or {})

    listed_animations = {a.id for a in model.animations}
    listed_themes = set(getattr(model, "themes", None) or [])
    listed_machines = set(getattr(model, "state_machines", None) or [])
    listed_inputs = {g.id: g.name for g in getattr(model, "global_inputs", None) or []}
    registry = bundle.registry
    pool: list[_Pooled] = []

    for path, raw in entries.items():
        kind, name = layout.classify(path)
        if kind is None:
            logger.debug(f"Ignoring unrecognised archive entry '{path}'")
            continue
        if kind == EntryKind.MANIFEST:
            continue

        if kind == EntryKind.ANIMATION:
            if name not in listed_animations:
                raise DanglingReferenceError(name, f"Archive entry '{path}' (animation not found inside manifest)")
            animation_data = _load_json(raw, f"animation '{name}'")
            registry.add_animation(Animation(id=name, data=animation_data, **_animation_fields(model, name)))

        elif kind in _POOLED_KINDS:
            pool.append(_Pooled(_POOLED_KINDS[kind], name, codec.encode(raw, codec.mime_for_file(name, raw))))

        elif kind == EntryKind.THEME:
            if name in listed_themes:
                registry.add_theme(Theme(id=name, data=_load_json(raw, f"theme '{name}'")))
            else:
                logger.warning(f"Theme '{name}' is not listed in the manifest; skipped")

        elif kind == EntryKind.STATE_MACHINE:
            if name in listed_machines:
                registry.add_state_machine(StateMachine(id=name, data=_load_json(raw, f"state machine '{name}'")))
            else:
                logger.warning(f"State machine '{name}' is not listed in the manifest; skipped")

        elif kind == EntryKind.GLOBAL_INPUTS:
            if name in listed_inputs:
                registry.add_global_inputs(GlobalInputs(
                    id=name, data=_load_json(raw, f"global inputs '{name}'"), name=listed_inputs[name],
                ))
            else:
                logger.warning(f"Global inputs '{name}' are not listed in the manifest; skipped")

    if isinstance(model, ManifestV2):
        for record in model.animations:
            for theme_id in record.themes or []:
                if registry.get_animation(record.id) is None:
                    continue
                if registry.get_theme(theme_id) is None:
                    logger.warning(f"Animation '{record.id}' is scoped to missing theme '{theme_id}'")
                    continue
                registry.scope_theme(theme_id, record.id)

    _link_assets(bundle, pool, strict_links)

    logger.info(
        f"Parsed v{version.value} archive: {len(registry.animations)} animation(s), "
        f"{len(registry.images)} image(s), {len(registry.audio)} audio, {len(registry.fonts)} font(s), "
        f"{len(registry.themes)} theme(s), {len(registry.state_machines)} state machine(s), "
        f"{len(registry.global_inputs)} global input set(s)"
    )
    return bundle


def _closest_by_stem(pool: list[_Pooled], kind: str, reference: str) -> Optional[_Pooled]:
    """The pooled file of ``kind`` with the longest stem contained in ``reference``."""
    candidates = [pooled for pooled in pool if pooled.kind == kind and pooled.stem in reference]
    return max(candidates, key=lambda pooled: len(pooled.stem), default=None)


def _link_assets(bundle: "Bundle", pool: list[_Pooled], strict: bool) -> None:
    registry = bundle.registry
    legacy = bundle.version == FormatVersion.LEGACY
    named = {(pooled.kind, pooled.reference) for pooled in pool}

    for pooled in pool:
        exact = strict or (legacy and pooled.kind == "image")
        for animation in registry.animations:
            for entry, key in reference_slots(animation, pooled.kind):
                reference = entry.get(key)
                if not isinstance(reference, str):
                    continue
                if reference != pooled.reference:
                    if exact or (pooled.kind, reference) in named or reference.startswith("data:"):
                        continue
                    if _closest_by_stem(pool, pooled.kind, reference) is not pooled:
                        continue
                    logger.debug(f"Linked '{reference}' to {pooled.kind} '{pooled.file_name}' by stem")
                    entry[key] = pooled.reference
                if pooled.asset is None:
                    pooled.asset = _ASSET_CLASSES[pooled.kind](
                        id=str(entry.get("fName" if pooled.kind == "font" else "id") or pooled.stem),
                        file_name=pooled.file_name,
                        data=pooled.data_url,
                    )
                registry.attach_asset(animation.id, pooled.asset)

        if pooled.asset is None:
            logger.debug(f"{pooled.kind.capitalize()} '{pooled.file_name}' is not used by any animation; dropped")
