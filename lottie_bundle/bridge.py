"""
Version bridge: legacy (v1) ↔ current (v2) archive conversion.

Conversion always goes through a full materialize → re-add cycle:

    parse source archive
    build it (resolve, extract, rename, plugins)
    for every animation: copy its data with all assets inlined
    add id + data to a fresh bundle of the target version

Only the animation id and data cross over. Legacy playback settings
(autoplay, loop, speed, ...) have no place in the current manifest and
are dropped; legacy archives cannot carry themes, state machines or
global inputs, so those are dropped going the other way. Fonts travel
inlined in the animation data. The result is valid for the target
version by construction.

    current = await to_current(legacy_bytes)        # Bundle (v2)
    raw     = await convert(legacy_bytes, "2")      # bytes
"""

from __future__ import annotations

import logging
from typing import Optional

from lottie_bundle.archive.parser import parse, read_manifest
from lottie_bundle.archive.zipcodec import ArchiveCodec
from lottie_bundle.bundle import Bundle
from lottie_bundle.core.codec import AssetCodec
from lottie_bundle.core.vocabulary import FormatVersion

logger = logging.getLogger(__name__)


def sniff_version(data: bytes, archive_codec: Optional[ArchiveCodec] = None) -> FormatVersion:
    """Read only the manifest's version field.

    Raises:
        MalformedArchiveError: if the archive has no readable manifest.
    """
    entries = (archive_codec or ArchiveCodec()).unpack(data)
    return FormatVersion.from_manifest(read_manifest(entries))


async def _rebuild(source: Bundle, target: FormatVersion) -> Bundle:
    await source.build()
    result = Bundle(
        version=target,
        codec=source.codec,
        archive_codec=source.archive_codec,
        generator=source.generator,
    )
    for animation in source.animations:
        copied = await source.get_animation(animation.id, inline_assets=True)
        result.add_animation(animation.id, data=copied.data)

    dropped = len(source.themes) + len(source.state_machines) + len(source.global_inputs)
    if target == FormatVersion.LEGACY and dropped:
        logger.warning(f"Dropped {dropped} theme(s)/state machine(s)/global input set(s) not expressible in v1")
    logger.info(
        f"Converted v{source.version.value} → v{target.value}: {len(result.animations)} animation(s)"
    )
    return result


async def to_current(data: bytes, codec: Optional[AssetCodec] = None) -> Bundle:
    """Parse an archive of either version into a current-format Bundle."""
    source = parse(data, codec=codec)
    if source.version == FormatVersion.CURRENT:
        return source
    return await _rebuild(source, FormatVersion.CURRENT)


async def to_legacy(data: bytes, codec: Optional[AssetCodec] = None) -> Bundle:
    """Parse an archive of either version into a legacy-format Bundle."""
    source = parse(data, codec=codec)
    if source.version == FormatVersion.LEGACY:
        return source
    return await _rebuild(source, FormatVersion.LEGACY)


async def convert(data: bytes, target: "FormatVersion | str", codec: Optional[AssetCodec] = None) -> bytes:
    """Convert archive bytes to ``target`` and pack them.

    Archives already in the target version are returned unchanged.
    """
    target = FormatVersion.from_string(target)
    if sniff_version(data) == target:
        return data
    bundle = await (to_current(data, codec) if target == FormatVersion.CURRENT else to_legacy(data, codec))
    return await bundle.to_bytes()
