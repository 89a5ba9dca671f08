"""
Duplicate image detector.

Collapses visually identical images owned by different animations (or
repeated inside one animation) into a single stored copy.

Algorithm, over every image of every animation in registry order:

    1. Perceptual-hash each image.
    2. Compare every pair with different file names where neither side
       is excluded. A pair matches when distance < threshold.
    3. The first image met that has no cluster of its own becomes the
       canonical for the match; the other side is excluded and recorded
       under the canonical's file name. Excluded images are never
       compared again, so clusters do not chain.
    4. Every owner's embedded path to a duplicate is pointed at the
       canonical's file name.
    5. One clone of the canonical is attached to each owner of a
       duplicate (unless it already owns the canonical itself) and the
       duplicate is detached.

Which copy survives depends only on insertion order. Re-running the
detector on its own output changes nothing: canonical and clone share a
file name and are never compared.
"""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

import imagehash
from PIL import Image, UnidentifiedImageError

from lottie_bundle import config
from lottie_bundle.core.entities import ImageAsset
from lottie_bundle.plugins.base import PluginBase

if TYPE_CHECKING:
    from lottie_bundle.bundle import Bundle

logger = logging.getLogger(__name__)


def phash(data: bytes) -> Optional[imagehash.ImageHash]:
    """Perceptual hash of encoded image bytes, or None if Pillow cannot decode them."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return imagehash.phash(img)
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"Cannot hash image ({e}); it will not be deduplicated")
        return None


def hamming(a: Any, b: Any) -> int:
    """Distance between two hashes. ImageHash defines ``-`` as Hamming distance."""
    if isinstance(a, str) and isinstance(b, str):
        return sum(1 for x, y in zip(a, b) if x != y) + abs(len(a) - len(b))
    return a - b


class _Candidate:
    __slots__ = ("image", "hash", "excluded")

    def __init__(self, image: ImageAsset, hash: Any):
        self.image = image
        self.hash = hash
        self.excluded = image.excluded


class DuplicateImageDetector(PluginBase):
    """Build plugin that stores perceptually identical images once.

    Args:
        hasher:    bytes → hash. Defaults to ``imagehash.phash`` via Pillow.
        distance:  (hash, hash) → int. Defaults to Hamming distance.
        threshold: Pairs closer than this are duplicates. Defaults to
                   config.DEDUP_THRESHOLD (5).
        parallel:  Run alongside other parallel plugins. Off by default,
                   since this plugin rewrites ownership.
    """

    def __init__(
        self,
        hasher: Optional[Callable[[bytes], Any]] = None,
        distance: Optional[Callable[[Any, Any], int]] = None,
        threshold: Optional[int] = None,
        parallel: bool = False,
    ):
        super().__init__(parallel=parallel)
        self.hasher = hasher or phash
        self.distance = distance or hamming
        self.threshold = threshold if threshold is not None else config.DEDUP_THRESHOLD

    async def find_duplicates(self, bundle: "Bundle") -> dict[str, list[ImageAsset]]:
        """Cluster the bundle's images. Returns {canonical file name: [duplicates]}."""
        registry = bundle.registry
        hashes: dict[ImageAsset, Any] = {}
        candidates: list[_Candidate] = []

        for animation in registry.animations:
            for image in registry.images_of(animation.id):
                if image not in hashes:
                    hashes[image] = self.hasher(await image.to_bytes(bundle.codec))
                candidates.append(_Candidate(image, hashes[image]))

        record: dict[str, list[ImageAsset]] = {}
        for candidate in candidates:
            for other in candidates:
                if (
                    candidate.image.file_name == other.image.file_name
                    or candidate.excluded
                    or other.excluded
                    or candidate.hash is None
                    or other.hash is None
                    or self.distance(candidate.hash, other.hash) >= self.threshold
                ):
                    continue

                key, other_key = candidate.image.file_name, other.image.file_name
                if key not in record and other_key not in record:
                    other.excluded = True
                    record[key] = [other.image]
                elif other_key in record and key not in record:
                    if not any(m is candidate.image for m in record[other_key]):
                        candidate.excluded = True
                        record[other_key].append(candidate.image)

        return record

    async def on_build(self, bundle: "Bundle") -> None:
        registry = bundle.registry
        record = await self.find_duplicates(bundle)
        if not record:
            logger.debug("No duplicate images found")
            return

        canonicals: dict[str, ImageAsset] = {}
        for image in registry.images:
            canonicals.setdefault(image.file_name, image)

        removed = 0
        for key, duplicates in record.items():
            canonical = canonicals[key]
            clone = canonical.clone()

            for duplicate in duplicates:
                owners = registry.owners_of(duplicate)
                registry.rewrite_references(owners, "image", duplicate.file_name, key)
                for owner in owners:
                    registry.detach_asset(owner, duplicate)
                    if not any(image is canonical for image in registry.images_of(owner)):
                        registry.attach_asset(owner, clone)
                duplicate.excluded = True
                removed += 1

        logger.info(f"Collapsed {removed} duplicate image(s) into {len(record)} canonical copies")
