"""
ArchiveCodec: zip packing and unpacking.

The only place that touches zipfile. Entries carry their own
compression level so callers can store the manifest uncompressed while
deflating everything else.
"""

from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass
from typing import Iterable, Optional

from lottie_bundle.core.errors import MalformedArchiveError

logger = logging.getLogger(__name__)

DEFAULT_LEVEL = 9


@dataclass
class ArchiveEntry:
    path:  str
    data:  bytes
    level: Optional[int] = None   # 0 = stored, 1-9 = deflate level, None = default

    def __repr__(self) -> str:
        return f"ArchiveEntry({self.path!r}, {len(self.data)} bytes, level={self.level})"


class ArchiveCodec:
    """Pack entries into zip bytes and back."""

    def __init__(self, default_level: int = DEFAULT_LEVEL):
        self.default_level = default_level

    def pack(self, entries: Iterable[ArchiveEntry]) -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            for entry in entries:
                level = self.default_level if entry.level is None else entry.level
                if level <= 0:
                    zf.writestr(entry.path, entry.data, compress_type=zipfile.ZIP_STORED)
                else:
                    zf.writestr(
                        entry.path, entry.data,
                        compress_type=zipfile.ZIP_DEFLATED,
                        compresslevel=min(level, 9),
                    )
        return buf.getvalue()

    def unpack(self, data: bytes) -> dict[str, bytes]:
        """Return {path: bytes} for every file entry, in archive order.

        Raises:
            MalformedArchiveError: if ``data`` is not a readable zip.
        """
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as zf:
                return {
                    info.filename: zf.read(info)
                    for info in zf.infolist()
                    if not info.is_dir()
                }
        except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError, TypeError) as e:
            raise MalformedArchiveError(f"Invalid buffer: not a zip archive ({e})")

    def compression_of(self, data: bytes) -> dict[str, int]:
        """{path: zipfile compress_type} for each entry. Used for inspection."""
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as zf:
                return {info.filename: info.compress_type for info in zf.infolist()}
        except zipfile.BadZipFile as e:
            raise MalformedArchiveError(f"Invalid buffer: not a zip archive ({e})")
