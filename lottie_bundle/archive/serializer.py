"""
Container serializer.

Turns a built bundle into archive entries laid out for the bundle's
format version:

    manifest.json                       (stored uncompressed in v2)
    a/<id>.json      animations/<id>.json
    i/<file>         images/<file>
    u/<file>         audio/<file>
    f/<file>         (v2 only)
    t/<id>.json      (v2 only)
    s/<id>.json      (v2 only)
    g/<id>.json      (v2 only)

Excluded assets are skipped and an asset shared by several animations
is written once. Per-entity ``zip_options={"level": n}`` is honoured.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from lottie_bundle.archive.zipcodec import ArchiveEntry
from lottie_bundle.core.errors import BundleError
from lottie_bundle.core.vocabulary import FormatVersion, MANIFEST_PATH

if TYPE_CHECKING:
    from lottie_bundle.bundle import Bundle

logger = logging.getLogger(__name__)


def _json_bytes(data: Any) -> bytes:
    return json.dumps(data, ensure_ascii=False).encode("utf-8")


async def collect_entries(bundle: "Bundle") -> list[ArchiveEntry]:
    """Archive entries for a bundle whose build has already run."""
    registry = bundle.registry
    layout = bundle.layout
    codec = bundle.codec

    manifest_level = 0 if bundle.version == FormatVersion.CURRENT else None
    entries = [ArchiveEntry(MANIFEST_PATH, _json_bytes(bundle.manifest), level=manifest_level)]

    for animation in registry.animations:
        if not animation.resolved:
            raise BundleError(f"Animation '{animation.id}' has no data; build the bundle first.")
        entries.append(ArchiveEntry(
            layout.animation_path(animation.id), _json_bytes(animation.data), animation.compress_level,
        ))

    binary_kinds = [("image", layout.image_path), ("audio", layout.audio_path)]
    if layout.packs_fonts:
        binary_kinds.append(("font", layout.font_path))

    written: set[str] = set()
    for animation in registry.animations:
        for kind, path_for in binary_kinds:
            for asset in registry.assets_of(animation.id, kind):
                path = path_for(asset.file_name)
                if asset.excluded or path in written:
                    continue
                written.add(path)
                entries.append(ArchiveEntry(path, await asset.to_bytes(codec), asset.compress_level))

    if layout.packs_themes:
        for theme in registry.themes:
            entries.append(ArchiveEntry(layout.theme_path(theme.id), _json_bytes(theme.data), theme.compress_level))
        for state_machine in registry.state_machines:
            entries.append(ArchiveEntry(
                layout.state_machine_path(state_machine.id),
                _json_bytes(state_machine.data),
                state_machine.compress_level,
            ))
        for global_inputs in registry.global_inputs:
            entries.append(ArchiveEntry(
                layout.global_inputs_path(global_inputs.id),
                _json_bytes(global_inputs.data),
                global_inputs.compress_level,
            ))
    elif registry.themes or registry.state_machines or registry.global_inputs:
        logger.warning(
            f"Format v{layout.version.value} cannot package themes, state machines or global inputs; "
            f"{len(registry.themes)} theme(s), {len(registry.state_machines)} state machine(s) "
            f"and {len(registry.global_inputs)} global input set(s) were left out"
        )

    return entries


async def serialize(bundle: "Bundle") -> bytes:
    entries = await collect_entries(bundle)
    logger.debug(f"Packing {len(entries)} entries")
    return bundle.archive_codec.pack(entries)
