"""
lottie-bundle vocabulary.

The fixed tables every other module agrees on: format versions, the
archive path layout of each version, Lottie asset shapes, and the
magic-byte signatures used to recover file extensions from raw bytes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


# ─────────────────────────────────────────────────────────────
# Format versions
# ─────────────────────────────────────────────────────────────

class FormatVersion(str, Enum):
    LEGACY  = "1"
    CURRENT = "2"

    @classmethod
    def from_manifest(cls, manifest: dict) -> "FormatVersion":
        """Sniff the archive version from a parsed manifest.

        Only an explicit "2" marks the current layout. A missing or any
        other version string is treated as legacy.
        """
        if str(manifest.get("version", "")) == cls.CURRENT.value:
            return cls.CURRENT
        return cls.LEGACY

    @classmethod
    def from_string(cls, value: "str | int | FormatVersion") -> "FormatVersion":
        if isinstance(value, cls):
            return value
        s = str(value).strip().lower()
        aliases = {"1": cls.LEGACY, "v1": cls.LEGACY, "legacy": cls.LEGACY,
                   "2": cls.CURRENT, "v2": cls.CURRENT, "current": cls.CURRENT}
        if s not in aliases:
            raise ValueError(f"Unknown format version: {value!r}")
        return aliases[s]


class PlayMode(str, Enum):
    NORMAL = "normal"
    BOUNCE = "bounce"


# ─────────────────────────────────────────────────────────────
# Archive layout
# ─────────────────────────────────────────────────────────────

MANIFEST_PATH = "manifest.json"


class EntryKind(str, Enum):
    MANIFEST      = "manifest"
    ANIMATION     = "animation"
    IMAGE         = "image"
    AUDIO         = "audio"
    FONT          = "font"
    THEME         = "theme"
    STATE_MACHINE = "state_machine"
    GLOBAL_INPUTS = "global_inputs"


@dataclass(frozen=True)
class ArchiveLayout:
    """Path prefixes for one archive format version.

    The prefixes are a hard compatibility contract with every other
    dotLottie reader. Legacy archives never carry fonts, themes, state
    machines or global inputs, so their prefixes are None.
    """
    version:        FormatVersion
    animations:     str
    images:         str
    audio:          str
    fonts:          Optional[str] = None
    themes:         Optional[str] = None
    state_machines: Optional[str] = None
    global_inputs:  Optional[str] = None

    @property
    def packs_themes(self) -> bool:
        return self.themes is not None

    @property
    def packs_fonts(self) -> bool:
        return self.fonts is not None

    def animation_path(self, animation_id: str) -> str:
        return f"{self.animations}{animation_id}.json"

    def image_path(self, file_name: str) -> str:
        return f"{self.images}{file_name}"

    def audio_path(self, file_name: str) -> str:
        return f"{self.audio}{file_name}"

    def font_path(self, file_name: str) -> str:
        if self.fonts is None:
            raise ValueError(f"Format v{self.version.value} does not package fonts.")
        return f"{self.fonts}{file_name}"

    def theme_path(self, theme_id: str) -> str:
        if self.themes is None:
            raise ValueError(f"Format v{self.version.value} does not package themes.")
        return f"{self.themes}{theme_id}.json"

    def state_machine_path(self, state_machine_id: str) -> str:
        if self.state_machines is None:
            raise ValueError(f"Format v{self.version.value} does not package state machines.")
        return f"{self.state_machines}{state_machine_id}.json"

    def global_inputs_path(self, global_inputs_id: str) -> str:
        if self.global_inputs is None:
            raise ValueError(f"Format v{self.version.value} does not package global inputs.")
        return f"{self.global_inputs}{global_inputs_id}.json"

    def classify(self, path: str) -> tuple[Optional[EntryKind], str]:
        """Return (kind, name) for an archive path, or (None, path) if unknown.

        ``name`` is the id for JSON entries and the file name for binary ones.
        """
        if path == MANIFEST_PATH:
            return EntryKind.MANIFEST, path

        json_prefixes = [(self.animations, EntryKind.ANIMATION)]
        if self.themes:
            json_prefixes.append((self.themes, EntryKind.THEME))
        if self.state_machines:
            json_prefixes.append((self.state_machines, EntryKind.STATE_MACHINE))
        if self.global_inputs:
            json_prefixes.append((self.global_inputs, EntryKind.GLOBAL_INPUTS))

        for prefix, kind in json_prefixes:
            if path.startswith(prefix) and path.endswith(".json"):
                name = path[len(prefix):-len(".json")]
                if name and "/" not in name:
                    return kind, name

        binary_prefixes = [(self.images, EntryKind.IMAGE), (self.audio, EntryKind.AUDIO)]
        if self.fonts:
            binary_prefixes.append((self.fonts, EntryKind.FONT))

        for prefix, kind in binary_prefixes:
            if path.startswith(prefix):
                name = path[len(prefix):]
                if name and "/" not in name:
                    return kind, name

        return None, path


LEGACY_LAYOUT = ArchiveLayout(
    version=FormatVersion.LEGACY,
    animations="animations/",
    images="images/",
    audio="audio/",
)

CURRENT_LAYOUT = ArchiveLayout(
    version=FormatVersion.CURRENT,
    animations="a/",
    images="i/",
    audio="u/",
    fonts="f/",
    themes="t/",
    state_machines="s/",
    global_inputs="g/",
)

LAYOUTS: dict[FormatVersion, ArchiveLayout] = {
    FormatVersion.LEGACY:  LEGACY_LAYOUT,
    FormatVersion.CURRENT: CURRENT_LAYOUT,
}


def layout_for(version: "FormatVersion | str") -> ArchiveLayout:
    return LAYOUTS[FormatVersion.from_string(version)]


# ─────────────────────────────────────────────────────────────
# Lottie document shapes
# ─────────────────────────────────────────────────────────────

REQUIRED_LOTTIE_KEYS = ("v", "ip", "op", "layers", "fr", "w", "h")

# Path written into the "u" field of an extracted asset.
IMAGE_ASSET_DIR = "/images/"
AUDIO_ASSET_DIR = "/audio/"

# Prefix of a packaged font's "fPath", and the "origin" that marks it as
# loaded from a path or URL rather than a system font.
FONT_ASSET_DIR = "/f/"
FONT_ORIGIN_URL = 3


def is_valid_lottie(data: Any) -> bool:
    return isinstance(data, dict) and all(key in data for key in REQUIRED_LOTTIE_KEYS)


def is_image_asset(asset: Any) -> bool:
    """An image asset has dimensions and a path, and is not a precomp."""
    return (
        isinstance(asset, dict)
        and "w" in asset and "h" in asset and "p" in asset
        and "xt" not in asset
    )


def is_audio_asset(asset: Any) -> bool:
    """An audio asset has a path and an id but no dimensions."""
    return (
        isinstance(asset, dict)
        and "w" not in asset and "h" not in asset
        and all(key in asset for key in ("p", "e", "u", "id"))
    )


def is_font_definition(font: Any) -> bool:
    """An entry of ``fonts.list`` that loads its glyphs from a path."""
    return isinstance(font, dict) and isinstance(font.get("fPath"), str) and bool(font["fPath"])


# ─────────────────────────────────────────────────────────────
# Binary signatures
# ─────────────────────────────────────────────────────────────

# Checked in order. The first matching prefix wins.
MAGIC_SIGNATURES: list[tuple[bytes, str]] = [
    (bytes([0xFF, 0xD8, 0xFF]),                                  "image/jpeg"),
    (bytes([0x89, 0x50, 0x4E, 0x47, 0x0D, 0x0A, 0x1A, 0x0A]),    "image/png"),
    (bytes([0x47, 0x49, 0x46]),                                  "image/gif"),
    (bytes([0x42, 0x4D]),                                        "image/bmp"),
    (bytes([0x3C, 0x3F, 0x78]),                                  "image/svg+xml"),
    (bytes([0x49, 0x44, 0x33]),                                  "audio/mpeg"),
    (bytes([0xFF, 0xFB]),                                        "audio/mpeg"),
    (b"OTTO",                                                    "font/otf"),
    (b"wOFF",                                                    "font/woff"),
    (b"wOF2",                                                    "font/woff2"),
    (bytes([0x00, 0x01, 0x00, 0x00]),                            "font/ttf"),
]

MIME_TO_EXTENSION: dict[str, str] = {
    "image/jpeg":    "jpeg",
    "image/png":     "png",
    "image/gif":     "gif",
    "image/bmp":     "bmp",
    "image/svg+xml": "svg",
    "image/svg":     "svg",
    "image/webp":    "webp",
    "audio/mpeg":    "mpeg",
    "audio/mp3":     "mp3",
    "font/ttf":      "ttf",
    "font/otf":      "otf",
    "font/woff":     "woff",
    "font/woff2":    "woff2",
}

EXTENSION_TO_MIME: dict[str, str] = {
    "jpg":  "image/jpeg",
    "jpeg": "image/jpeg",
    "png":  "image/png",
    "gif":  "image/gif",
    "bmp":  "image/bmp",
    "svg":  "image/svg+xml",
    "webp": "image/webp",
    "mp3":  "audio/mpeg",
    "mpeg": "audio/mpeg",
    "ttf":  "font/ttf",
    "otf":  "font/otf",
    "woff": "font/woff",
    "woff2": "font/woff2",
}

DEFAULT_EXTENSION = "png"
