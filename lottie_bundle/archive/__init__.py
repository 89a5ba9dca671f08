"""Archive I/O: zip codec, container serializer and parser."""

from lottie_bundle.archive.parser import parse, read_manifest
from lottie_bundle.archive.serializer import collect_entries, serialize
from lottie_bundle.archive.zipcodec import ArchiveCodec, ArchiveEntry

__all__ = ["ArchiveCodec", "ArchiveEntry", "collect_entries", "parse", "read_manifest", "serialize"]
