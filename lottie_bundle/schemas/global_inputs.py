"""
Global inputs document schema.

A global inputs document maps input names to typed values that themes
and state machines can bind to:

    {
        "primaryColor": {"type": "Color", "value": [1, 0, 0, 1],
                         "bindings": {"themes": [{"themeId": "dark", "ruleId": "bg", "path": "value"}]}},
        "opacity":      {"type": "Numeric", "value": 0.5},
    }
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import Field, TypeAdapter, ValidationError

from lottie_bundle.core.errors import ErrorCode, SchemaValidationError
from lottie_bundle.schemas._base import Document, issues_from
from lottie_bundle.schemas.theme import GradientStop, ImageValue

Number = Union[int, float]


# ── Bindings ───────────────────────────────────────────────

class ThemeBinding(Document):
    theme_id: str = Field(..., alias="themeId")
    rule_id:  str = Field(..., alias="ruleId")
    path:     str


class StateMachineBinding(Document):
    state_machine_id: str       = Field(..., alias="stateMachineId")
    input_name:       list[str] = Field(..., alias="inputName")


class Bindings(Document):
    themes:         Optional[list[ThemeBinding]]        = None
    state_machines: Optional[list[StateMachineBinding]] = Field(None, alias="stateMachines")


# ── Inputs ─────────────────────────────────────────────────

class _Input(Document):
    bindings: Optional[Bindings] = None


class ColorInput(_Input):
    type:  Literal["Color"]
    value: list[Number]


class VectorInput(_Input):
    type:  Literal["Vector"]
    value: list[Number]


class NumericInput(_Input):
    type:  Literal["Numeric"]
    value: Number


class BooleanInput(_Input):
    type:  Literal["Boolean"]
    value: bool


class GradientInput(_Input):
    type:  Literal["Gradient"]
    value: list[GradientStop]


class ImageInput(_Input):
    type:  Literal["Image"]
    value: ImageValue


class StringInput(_Input):
    type:  Literal["String"]
    value: str


GlobalInput = Annotated[
    Union[ColorInput, VectorInput, NumericInput, BooleanInput, GradientInput, ImageInput, StringInput],
    Field(discriminator="type"),
]

GlobalInputsDocument = TypeAdapter(dict[str, GlobalInput])


def validate_global_inputs(data: Any, global_inputs_id: str = "<global inputs>") -> dict[str, Any]:
    """Validate a global inputs document. Returns {name: typed input}.

    Raises:
        SchemaValidationError: with the full issue list if ``data`` does
                               not match the schema.
    """
    try:
        return GlobalInputsDocument.validate_python(data)
    except ValidationError as e:
        raise SchemaValidationError(
            "global inputs", global_inputs_id, issues_from(e), code=ErrorCode.INVALID_GLOBAL_INPUTS,
        )
