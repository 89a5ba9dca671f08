"""Document schemas: manifests, themes, state machines and global inputs."""

from lottie_bundle.schemas.global_inputs import GlobalInputsDocument, validate_global_inputs
from lottie_bundle.schemas.manifest import (
    ManifestAnimationV1,
    ManifestAnimationV2,
    ManifestGlobalInputs,
    ManifestInitial,
    ManifestV1,
    ManifestV2,
    validate_manifest,
)
from lottie_bundle.schemas.state_machine import StateMachineDocument, validate_state_machine
from lottie_bundle.schemas.theme import ThemeDocument, validate_theme

__all__ = [
    "GlobalInputsDocument",
    "ManifestAnimationV1",
    "ManifestAnimationV2",
    "ManifestGlobalInputs",
    "ManifestInitial",
    "ManifestV1",
    "ManifestV2",
    "StateMachineDocument",
    "ThemeDocument",
    "validate_global_inputs",
    "validate_manifest",
    "validate_state_machine",
    "validate_theme",
]
