"""
Manifest models for both archive versions.

The manifest is a projection of a bundle's registries. These models
give it a checked shape on the way out (projector) and on the way in
(parser). Keys use the camelCase spelling found inside archives.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import Field, ValidationError

from lottie_bundle.core.errors import MalformedArchiveError
from lottie_bundle.core.vocabulary import FormatVersion, PlayMode
from lottie_bundle.schemas._base import Document, issues_from


# ─────────────────────────────────────────────────────────────
# Legacy (v1)
# ─────────────────────────────────────────────────────────────

class ManifestAnimationV1(Document):
    id:            str
    direction:     Optional[int]                = Field(None, description="1 forward, -1 reverse")
    speed:         Optional[float]              = None
    play_mode:     Optional[PlayMode]           = Field(None, alias="playMode")
    loop:          Optional[Union[bool, int]]   = None
    autoplay:      Optional[bool]               = None
    hover:         Optional[bool]               = None
    intermission:  Optional[int]                = None
    theme_color:   Optional[str]                = Field(None, alias="themeColor")


class ManifestV1(Document):
    version:             str                          = "1"
    generator:           Optional[str]                = None
    author:              Optional[str]                = None
    description:         Optional[str]                = None
    keywords:            Optional[str]                = None
    revision:            Optional[int]                = None
    custom:              Optional[dict[str, Any]]     = None
    active_animation_id: Optional[str]                = Field(None, alias="activeAnimationId")
    animations:          list[ManifestAnimationV1]    = Field(..., min_length=1)


# ─────────────────────────────────────────────────────────────
# Current (v2)
# ─────────────────────────────────────────────────────────────

class ManifestAnimationV2(Document):
    id:             str
    name:           Optional[str]        = None
    initial_theme:  Optional[str]        = Field(None, alias="initialTheme")
    background:     Optional[str]        = None
    themes:         Optional[list[str]]  = None


class ManifestGlobalInputs(Document):
    id:             str
    name:           Optional[str] = None


class ManifestInitial(Document):
    animation:      Optional[str] = None
    state_machine:  Optional[str] = Field(None, alias="stateMachine")


class ManifestV2(Document):
    version:         str                          = "2"
    generator:       Optional[str]                = None
    animations:      list[ManifestAnimationV2]    = Field(..., min_length=1)
    themes:          Optional[list[str]]          = None
    state_machines:  Optional[list[str]]          = Field(None, alias="stateMachines")
    global_inputs:   Optional[list[ManifestGlobalInputs]] = Field(None, alias="globalInputs")
    initial:         Optional[ManifestInitial]    = None


MANIFEST_MODELS = {
    FormatVersion.LEGACY:  ManifestV1,
    FormatVersion.CURRENT: ManifestV2,
}


def validate_manifest(manifest: Any, version: Optional[FormatVersion] = None) -> "ManifestV1 | ManifestV2":
    """Validate a parsed manifest.json and return its model.

    Raises:
        MalformedArchiveError: if the manifest is not an object or does
                               not match the schema for its version.
    """
    if not isinstance(manifest, dict):
        raise MalformedArchiveError("Invalid manifest: expected a JSON object.")
    version = version or FormatVersion.from_manifest(manifest)
    try:
        return MANIFEST_MODELS[version].model_validate(manifest)
    except ValidationError as e:
        issues = issues_from(e)
        first = issues[0] if issues else {"path": "", "msg": "unknown error"}
        raise MalformedArchiveError(f"Invalid manifest: {first['path']}: {first['msg']}")


def dump_manifest(model: "ManifestV1 | ManifestV2") -> dict[str, Any]:
    """Serialize a manifest model the way it is stored in the archive."""
    return model.model_dump(by_alias=True, exclude_none=True, mode="json")
