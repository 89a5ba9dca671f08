"""
lottie-bundle entities.

These are the nouns a bundle is made of. Each one is a plain dataclass
validated in __post_init__, so an entity that exists is an entity that
is valid. Updates go through ``update(**changes)``, which returns a new
validated instance; the registry swaps it in place of the old one.

    Bundle
    ├── Animation ──owns──→ ImageAsset, AudioAsset, FontAsset   (many-to-many)
    │       ↑
    │       └──scoped by── Theme                                (many-to-many)
    ├── StateMachine ──references──→ Animation (by id, checked at build)
    └── GlobalInputs                                             (standalone)

Binary assets are the exception to the copy-on-update rule: ownership
is tracked by object identity, so renames mutate ``file_name`` in place
through AssetRegistry.rename_asset(), which also rewrites every owning
animation's embedded path in the same step.
"""

from __future__ import annotations

import copy
import dataclasses
from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Union

import httpx

from lottie_bundle.core.errors import ErrorCode, InvalidEntityError
from lottie_bundle.core.vocabulary import PlayMode, REQUIRED_LOTTIE_KEYS, is_font_definition, is_valid_lottie
from lottie_bundle.schemas.global_inputs import validate_global_inputs
from lottie_bundle.schemas.state_machine import validate_state_machine
from lottie_bundle.schemas.theme import validate_theme


def _require_id(value: Any, kind: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidEntityError(f"Invalid {kind} id: id must be a non-empty string (got {value!r}).")


def _require_url(value: Any, kind: str, entity_id: str) -> None:
    try:
        parsed = httpx.URL(value)
    except (httpx.InvalidURL, TypeError):
        parsed = None
    if parsed is None or parsed.scheme not in ("http", "https") or not parsed.host:
        raise InvalidEntityError(f"Invalid url for {kind} '{entity_id}': {value!r}", code=ErrorCode.INVALID_URL)


class _Entity:
    """Behaviour shared by every entity dataclass."""

    kind: ClassVar[str] = "entity"

    def update(self, **changes):
        """Return a re-validated copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    @property
    def compress_level(self) -> Optional[int]:
        """Per-entry zip compression level, or None for the codec default."""
        level = self.zip_options.get("level")
        return int(level) if level is not None else None


# ─────────────────────────────────────────────────────────────
# Animation
# ─────────────────────────────────────────────────────────────

@dataclass(eq=False)
class Animation(_Entity):
    """One Lottie animation.

    Exactly one of ``data`` / ``url`` is authoritative: until the build
    resolves it, a url-sourced animation has no data; afterwards data is
    canonical and the url is kept only as provenance.

    The playback fields (autoplay through theme_color) are only
    expressible in the legacy manifest and are dropped by the current
    format.
    """
    kind: ClassVar[str] = "animation"

    id:             str
    data:           Optional[dict[str, Any]] = None
    url:            Optional[str]            = None
    name:           Optional[str]            = None
    initial_theme:  Optional[str]            = None
    background:     Optional[str]            = None
    default_active: bool                     = False
    # legacy playback settings
    autoplay:       Optional[bool]             = None
    loop:           Optional[Union[bool, int]] = None
    speed:          Optional[float]            = None
    direction:      Optional[int]              = None
    play_mode:      Optional[PlayMode]         = None
    hover:          Optional[bool]             = None
    intermission:   Optional[int]              = None
    theme_color:    Optional[str]              = None
    zip_options:    dict[str, Any]             = field(default_factory=dict)

    def __post_init__(self):
        _require_id(self.id, self.kind)
        if self.data is None and self.url is None:
            raise InvalidEntityError(f"Animation '{self.id}' needs either data or a url.")
        if self.data is not None and not is_valid_lottie(self.data):
            missing = [k for k in REQUIRED_LOTTIE_KEYS if not isinstance(self.data, dict) or k not in self.data]
            raise InvalidEntityError(
                f"Received invalid Lottie data for animation '{self.id}' (missing {missing}).",
                code=ErrorCode.INVALID_ANIMATION,
            )
        if self.url is not None:
            _require_url(self.url, self.kind, self.id)
        if self.direction is not None and self.direction not in (1, -1):
            raise InvalidEntityError(f"Animation '{self.id}': direction must be 1 or -1, got {self.direction!r}.")
        if self.speed is not None and self.speed <= 0:
            raise InvalidEntityError(f"Animation '{self.id}': speed must be positive, got {self.speed!r}.")
        if self.intermission is not None and self.intermission < 0:
            raise InvalidEntityError(f"Animation '{self.id}': intermission must be >= 0.")
        if self.play_mode is not None and not isinstance(self.play_mode, PlayMode):
            try:
                self.play_mode = PlayMode(self.play_mode)
            except ValueError:
                raise InvalidEntityError(f"Animation '{self.id}': unknown play mode {self.play_mode!r}.")

    @property
    def resolved(self) -> bool:
        return self.data is not None

    @property
    def lottie_assets(self) -> list[dict[str, Any]]:
        """The ``assets`` array embedded in the animation data (live, not a copy)."""
        if not self.data:
            return []
        assets = self.data.get("assets")
        return assets if isinstance(assets, list) else []

    @property
    def font_definitions(self) -> list[dict[str, Any]]:
        """Entries of ``fonts.list`` that load from a path (live, not copies)."""
        fonts = (self.data or {}).get("fonts")
        listed = fonts.get("list") if isinstance(fonts, dict) else None
        if not isinstance(listed, list):
            return []
        return [font for font in listed if is_font_definition(font)]

    def playback_settings(self) -> dict[str, Any]:
        """Legacy playback fields that are set, keyed as in the v1 manifest."""
        settings = {
            "autoplay":     self.autoplay,
            "loop":         self.loop,
            "speed":        self.speed,
            "direction":    self.direction,
            "playMode":     self.play_mode.value if self.play_mode else None,
            "hover":        self.hover,
            "intermission": self.intermission,
            "themeColor":   self.theme_color,
        }
        return {k: v for k, v in settings.items() if v is not None}

    def to_dict(self) -> dict:
        return {
            "id":             self.id,
            "kind":           self.kind,
            "name":           self.name,
            "url":            self.url,
            "resolved":       self.resolved,
            "initial_theme":  self.initial_theme,
            "background":     self.background,
            "default_active": self.default_active,
            **self.playback_settings(),
        }

    def __repr__(self) -> str:
        src = "data" if self.resolved else f"url={self.url!r}"
        return f"Animation(id={self.id!r}, {src})"


# ─────────────────────────────────────────────────────────────
# Binary assets
# ─────────────────────────────────────────────────────────────

@dataclass(eq=False)
class Asset(_Entity):
    """A binary asset referenced from animation data.

    ``id`` is the identifier embedded in the owning animation's
    ``assets`` array. ``file_name`` is the archive file name (id plus a
    detected extension, or ``image_N.ext`` after renaming). In memory the
    bytes are held as a base64 data URL; a url-sourced asset is fetched
    on first use.
    """
    kind: ClassVar[str] = "asset"

    id:          str
    file_name:   str                = ""
    data:        Optional[str]      = None
    url:         Optional[str]      = None
    excluded:    bool               = False
    zip_options: dict[str, Any]     = field(default_factory=dict)

    def __post_init__(self):
        _require_id(self.id, self.kind)
        if not self.file_name:
            raise InvalidEntityError(f"{self.kind.capitalize()} '{self.id}' needs a file name.")
        if self.data is None and self.url is None:
            raise InvalidEntityError(f"{self.kind.capitalize()} '{self.id}' needs either data or a url.")
        if self.url is not None:
            _require_url(self.url, self.kind, self.id)

    @property
    def stem(self) -> str:
        return self.file_name.rsplit(".", 1)[0] if "." in self.file_name else self.file_name

    async def to_data_url(self, codec) -> str:
        """Return the asset as a data URL, fetching it once if url-sourced."""
        if self.data is None:
            self.data = codec.encode(await codec.fetch(self.url))
        return self.data

    async def to_bytes(self, codec) -> bytes:
        return codec.decode(await self.to_data_url(codec))

    def clone(self) -> "Asset":
        """A fresh, non-excluded node with the same content and name."""
        return self.__class__(
            id=self.id,
            file_name=self.file_name,
            data=self.data,
            url=self.url,
            zip_options=copy.deepcopy(self.zip_options),
        )

    def to_dict(self) -> dict:
        return {
            "id":        self.id,
            "kind":      self.kind,
            "file_name": self.file_name,
            "url":       self.url,
            "excluded":  self.excluded,
        }

    def __repr__(self) -> str:
        flag = ", excluded" if self.excluded else ""
        return f"{self.__class__.__name__}(id={self.id!r}, file_name={self.file_name!r}{flag})"


@dataclass(eq=False, repr=False)
class ImageAsset(Asset):
    kind: ClassVar[str] = "image"


@dataclass(eq=False, repr=False)
class AudioAsset(Asset):
    kind: ClassVar[str] = "audio"


@dataclass(eq=False, repr=False)
class FontAsset(Asset):
    """A font file referenced from ``fonts.list[].fPath``. ``id`` is the font's fName."""
    kind: ClassVar[str] = "font"


# ─────────────────────────────────────────────────────────────
# Theme
# ─────────────────────────────────────────────────────────────

@dataclass(eq=False)
class Theme(_Entity):
    """A set of style rules that can be scoped to animations.

    Scoping itself lives in the registry, not here.
    """
    kind: ClassVar[str] = "theme"

    id:          str
    data:        Optional[dict[str, Any]] = None
    url:         Optional[str]            = None
    zip_options: dict[str, Any]           = field(default_factory=dict)

    def __post_init__(self):
        _require_id(self.id, self.kind)
        if self.data is None and self.url is None:
            raise InvalidEntityError(f"Theme '{self.id}' needs either data or a url.")
        if self.data is not None:
            validate_theme(self.data, self.id)
        if self.url is not None:
            _require_url(self.url, self.kind, self.id)

    @property
    def resolved(self) -> bool:
        return self.data is not None

    def to_dict(self) -> dict:
        return {"id": self.id, "kind": self.kind, "url": self.url, "resolved": self.resolved}

    def __repr__(self) -> str:
        return f"Theme(id={self.id!r})"


# ─────────────────────────────────────────────────────────────
# State machine
# ─────────────────────────────────────────────────────────────

@dataclass(eq=False)
class StateMachine(_Entity):
    kind: ClassVar[str] = "state_machine"

    id:          str
    data:        dict[str, Any]   = field(default_factory=dict)
    zip_options: dict[str, Any]   = field(default_factory=dict)

    def __post_init__(self):
        _require_id(self.id, "state machine")
        self._document = validate_state_machine(self.data, self.id)

    @property
    def animation_ids(self) -> list[str]:
        """Animation ids referenced by this machine's playback states."""
        return self._document.animation_ids

    @property
    def initial_state(self) -> str:
        return self._document.initial

    def to_dict(self) -> dict:
        return {
            "id":            self.id,
            "kind":          self.kind,
            "initial":       self.initial_state,
            "states":        len(self.data.get("states", [])),
            "animation_ids": self.animation_ids,
        }

    def __repr__(self) -> str:
        return f"StateMachine(id={self.id!r}, initial={self.initial_state!r})"


# ─────────────────────────────────────────────────────────────
# Global inputs
# ─────────────────────────────────────────────────────────────

@dataclass(eq=False)
class GlobalInputs(_Entity):
    """Named, typed inputs shared by themes and state machines."""
    kind: ClassVar[str] = "global_inputs"

    id:          str
    data:        dict[str, Any]   = field(default_factory=dict)
    name:        Optional[str]    = None
    zip_options: dict[str, Any]   = field(default_factory=dict)

    def __post_init__(self):
        _require_id(self.id, "global inputs")
        validate_global_inputs(self.data, self.id)

    def get_input(self, name: str) -> Optional[dict[str, Any]]:
        return self.data.get(name)

    def to_dict(self) -> dict:
        return {"id": self.id, "kind": self.kind, "name": self.name, "inputs": list(self.data)}

    def __repr__(self) -> str:
        return f"GlobalInputs(id={self.id!r}, inputs={len(self.data)})"
