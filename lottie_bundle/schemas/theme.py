"""
Theme document schema.

A theme is a list of rules. Each rule targets one slot (by id) in the
animations it is scoped to and overrides its value, keyframes or
expression:

    {"rules": [{"id": "bg", "type": "Color", "value": [1, 0, 0, 1]}]}
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import Field, ValidationError

from lottie_bundle.core.errors import ErrorCode, SchemaValidationError
from lottie_bundle.schemas._base import Document, issues_from

Number = Union[int, float]


# ── Keyframes ──────────────────────────────────────────────

class Tangent(Document):
    x: Union[Number, list[Number]]
    y: Union[Number, list[Number]]


class _Keyframe(Document):
    frame:        Number
    in_tangent:   Optional[Tangent] = Field(None, alias="inTangent")
    out_tangent:  Optional[Tangent] = Field(None, alias="outTangent")
    hold:         Optional[bool]    = None


class ScalarKeyframe(_Keyframe):
    value: Number


class VectorKeyframe(_Keyframe):
    value: list[Number]


class PositionKeyframe(_Keyframe):
    value:             Optional[Union[str, list[Number]]] = None
    value_in_tangent:  Optional[Number] = Field(None, alias="valueInTangent")
    value_out_tangent: Optional[Number] = Field(None, alias="valueOutTangent")


class GradientStop(Document):
    color:  Optional[Union[str, list[Number]]] = None
    offset: Number


class GradientKeyframe(_Keyframe):
    value: list[GradientStop]


class TextDocument(Document):
    text:             Optional[str]          = None
    font_family:      Optional[str]          = Field(None, alias="fontFamily")
    font_size:        Optional[Number]       = Field(None, alias="fontSize")
    fill_color:       Optional[list[Number]] = Field(None, alias="fillColor")
    stroke_color:     Optional[list[Number]] = Field(None, alias="strokeColor")
    stroke_width:     Optional[Number]       = Field(None, alias="strokeWidth")
    stroke_over_fill: Optional[bool]         = Field(None, alias="strokeOverFill")
    line_height:      Optional[Number]       = Field(None, alias="lineHeight")
    tracking:         Optional[Number]       = None
    justify: Optional[Literal[
        "Left", "Right", "Center",
        "JustifyLastLeft", "JustifyLastRight", "JustifyLastCenter", "JustifyLastFull",
    ]] = None
    text_caps:        Optional[Literal["Regular", "AllCaps", "SmallCaps"]] = Field(None, alias="textCaps")
    baseline_shift:   Optional[Number]       = Field(None, alias="baselineShift")
    wrap_size:        Optional[list[Number]] = Field(None, alias="wrapSize")
    wrap_position:    Optional[list[Number]] = Field(None, alias="wrapPosition")


class TextKeyframe(Document):
    frame: Number
    value: TextDocument


class ImageValue(Document):
    id:     Optional[str]    = None
    width:  Optional[Number] = None
    height: Optional[Number] = None
    url:    Optional[str]    = None


# ── Rules ──────────────────────────────────────────────────

class _Rule(Document):
    id:         str
    animations: Optional[list[str]] = Field(None, description="Animation ids this rule applies to")


class ColorRule(_Rule):
    type:       Literal["Color"]
    value:      Optional[Union[str, list[Number]]] = None
    keyframes:  Optional[list[VectorKeyframe]]     = None
    expression: Optional[str]                      = None


class ScalarRule(_Rule):
    type:       Literal["Scalar"]
    value:      Optional[Union[str, Number]]   = None
    keyframes:  Optional[list[ScalarKeyframe]] = None
    expression: Optional[str]                  = None


class PositionRule(_Rule):
    type:       Literal["Position"]
    split:      Optional[bool]                   = None
    keyframes:  Optional[list[PositionKeyframe]] = None
    expression: Optional[str]                    = None


class VectorRule(_Rule):
    type:       Literal["Vector"]
    value:      Optional[Union[str, list[Number]]] = None
    keyframes:  Optional[list[VectorKeyframe]]     = None
    expression: Optional[str]                      = None


class ImageRule(_Rule):
    type:  Literal["Image"]
    value: ImageValue


class GradientRule(_Rule):
    type:      Literal["Gradient"]
    value:     Optional[Union[list[GradientStop], str]] = None
    keyframes: Optional[list[GradientKeyframe]]         = None


class TextRule(_Rule):
    type:       Literal["Text"]
    value:      Optional[TextDocument]       = None
    keyframes:  Optional[list[TextKeyframe]] = None
    expression: Optional[str]                = None


Rule = Annotated[
    Union[ColorRule, ScalarRule, PositionRule, VectorRule, ImageRule, GradientRule, TextRule],
    Field(discriminator="type"),
]


class ThemeDocument(Document):
    rules: list[Rule]


def validate_theme(data: Any, theme_id: str = "<theme>") -> ThemeDocument:
    """Validate a theme document.

    Raises:
        SchemaValidationError: with the full issue list if ``data`` does
                               not match the theme schema.
    """
    try:
        return ThemeDocument.model_validate(data)
    except ValidationError as e:
        raise SchemaValidationError("theme", theme_id, issues_from(e), code=ErrorCode.INVALID_THEME)
