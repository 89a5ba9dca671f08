"""
State machine document schema.

Only the structure is checked here. Whether a playback state's
``animation`` actually exists in the bundle is a build-time concern
(see Bundle.build), because machines may be added before the
animations they drive.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import Field, ValidationError, model_validator

from lottie_bundle.core.errors import ErrorCode, SchemaValidationError
from lottie_bundle.schemas._base import Document, issues_from

Number = Union[int, float]


# ── Guards ─────────────────────────────────────────────────

class NumericGuard(Document):
    type:           Literal["Numeric"]
    input_name:     str = Field(..., alias="inputName")
    condition_type: str = Field(..., alias="conditionType")
    compare_to:     Union[str, Number, bool] = Field(..., alias="compareTo")


class StringGuard(Document):
    type:           Literal["String"]
    input_name:     str = Field(..., alias="inputName")
    condition_type: str = Field(..., alias="conditionType")
    compare_to:     str = Field(..., alias="compareTo")


class BooleanGuard(Document):
    type:           Literal["Boolean"]
    input_name:     str = Field(..., alias="inputName")
    condition_type: str = Field(..., alias="conditionType")
    compare_to:     Union[str, bool] = Field(..., alias="compareTo")


class EventGuard(Document):
    type:       Literal["Event"]
    input_name: str = Field(..., alias="inputName")


Guard = Annotated[
    Union[NumericGuard, StringGuard, BooleanGuard, EventGuard],
    Field(discriminator="type"),
]


# ── Transitions ────────────────────────────────────────────

class Transition(Document):
    type:     Literal["Transition"]
    to_state: str                   = Field(..., alias="toState")
    guards:   Optional[list[Guard]] = None


class TweenedTransition(Document):
    type:     Literal["Tweened"]
    to_state: str                   = Field(..., alias="toState")
    guards:   Optional[list[Guard]] = None
    duration: Number
    easing:   list[Number]


AnyTransition = Annotated[Union[Transition, TweenedTransition], Field(discriminator="type")]


# ── Actions ────────────────────────────────────────────────

ACTION_TYPES = (
    "OpenUrl", "SetTheme", "Increment", "Decrement", "Toggle",
    "SetBoolean", "SetString", "SetNumeric", "Fire", "Reset",
    "SetExpression", "SetFrame", "SetProgress", "SetSlot", "FireCustomEvent",
)

_INPUT_ACTIONS = {"Increment", "Decrement", "Toggle", "SetBoolean", "SetString", "SetNumeric", "Fire", "Reset"}


class Action(Document):
    """One entry/exit/interaction action.

    The action set is wide and mostly flat, so a single model checks
    the type tag and the one field each family cannot do without.
    """
    type:       Literal[ACTION_TYPES]
    input_name: Optional[str]                    = Field(None, alias="inputName")
    url:        Optional[str]                    = None
    target:     Optional[Literal["_blank", "_self", "_parent", "_top", "_unfencedTop"]] = None
    value:      Optional[Union[str, Number, bool]] = None
    theme_id:   Optional[str]                    = Field(None, alias="themeId")
    layer_name: Optional[str]                    = Field(None, alias="layerName")

    @model_validator(mode="after")
    def _required_fields(self) -> "Action":
        if self.type in _INPUT_ACTIONS and not self.input_name:
            raise ValueError(f"{self.type} action requires inputName")
        if self.type == "OpenUrl" and not self.url:
            raise ValueError("OpenUrl action requires url")
        if self.type == "SetTheme" and self.value is None and self.theme_id is None:
            raise ValueError("SetTheme action requires value or themeId")
        return self


# ── States ─────────────────────────────────────────────────

class PlaybackState(Document):
    name:          str
    type:          Literal["PlaybackState"]
    animation:     str
    loop:          Optional[bool]   = None
    autoplay:      Optional[bool]   = None
    final:         Optional[bool]   = None
    mode:          Optional[Literal["Forward", "Reverse", "Bounce", "ReverseBounce"]] = None
    speed:         Optional[Number] = None
    segment:       Optional[str]    = None
    background_color:        Optional[Number] = Field(None, alias="backgroundColor")
    use_frame_interpolation: Optional[bool]   = Field(None, alias="useFrameInterpolation")
    entry_actions: Optional[list[Action]]        = Field(None, alias="entryActions")
    exit_actions:  Optional[list[Action]]        = Field(None, alias="exitActions")
    transitions:   Optional[list[AnyTransition]] = None


class GlobalState(Document):
    name:          str
    type:          Literal["GlobalState"]
    entry_actions: Optional[list[Action]]        = Field(None, alias="entryActions")
    exit_actions:  Optional[list[Action]]        = Field(None, alias="exitActions")
    transitions:   Optional[list[AnyTransition]] = None


State = Annotated[Union[PlaybackState, GlobalState], Field(discriminator="type")]


# ── Interactions ───────────────────────────────────────────

class Interaction(Document):
    type: Literal[
        "PointerUp", "PointerDown", "PointerEnter", "PointerMove",
        "PointerExit", "Click", "OnComplete", "OnLoopComplete",
    ]
    layer_name: Optional[str] = Field(None, alias="layerName")
    state_name: Optional[str] = Field(None, alias="stateName")
    actions:    list[Action]

    @model_validator(mode="after")
    def _state_name_required(self) -> "Interaction":
        if self.type in ("OnComplete", "OnLoopComplete") and not self.state_name:
            raise ValueError(f"{self.type} interaction requires stateName")
        return self


# ── Inputs ─────────────────────────────────────────────────

class NumericInput(Document):
    type:  Literal["Numeric"]
    name:  str
    value: Number


class StringInput(Document):
    type:  Literal["String"]
    name:  str
    value: str


class BooleanInput(Document):
    type:  Literal["Boolean"]
    name:  str
    value: bool


class EventInput(Document):
    type: Literal["Event"]
    name: str


Input = Annotated[
    Union[NumericInput, StringInput, BooleanInput, EventInput],
    Field(discriminator="type"),
]


# ── Document ───────────────────────────────────────────────

class StateMachineDocument(Document):
    initial:      str
    states:       list[State]
    interactions: Optional[list[Interaction]] = None
    inputs:       Optional[list[Input]]       = None

    @property
    def animation_ids(self) -> list[str]:
        """Animation ids referenced by playback states, in state order."""
        return [s.animation for s in self.states if isinstance(s, PlaybackState)]


def validate_state_machine(data: Any, state_machine_id: str = "<state machine>") -> StateMachineDocument:
    """Validate a state machine document.

    Raises:
        SchemaValidationError: with the full issue list if ``data`` does
                               not match the state machine schema.
    """
    try:
        return StateMachineDocument.model_validate(data)
    except ValidationError as e:
        raise SchemaValidationError(
            "state machine", state_machine_id, issues_from(e), code=ErrorCode.INVALID_STATEMACHINE,
        )
