"""
lottie-bundle core.

    from lottie_bundle.core import (
        # Entities
        Animation, ImageAsset, AudioAsset, FontAsset, Theme, StateMachine,
        GlobalInputs,
        # Registry
        AssetRegistry,
        # Codec
        AssetCodec,
        # Vocabulary
        FormatVersion, PlayMode, ArchiveLayout, layout_for,
        # Errors
        BundleError, MalformedArchiveError, DanglingReferenceError,
        SchemaValidationError, DuplicateIdentityError, FetchError,
    )
"""

from lottie_bundle.core.codec import AssetCodec
from lottie_bundle.core.entities import (
    Animation,
    Asset,
    AudioAsset,
    FontAsset,
    GlobalInputs,
    ImageAsset,
    StateMachine,
    Theme,
)
from lottie_bundle.core.errors import (
    AssetDecodeError,
    BundleError,
    DanglingReferenceError,
    DuplicateIdentityError,
    ErrorCode,
    FetchError,
    InvalidEntityError,
    MalformedArchiveError,
    SchemaValidationError,
)
from lottie_bundle.core.registry import AssetRegistry
from lottie_bundle.core.vocabulary import (
    ArchiveLayout,
    CURRENT_LAYOUT,
    EntryKind,
    FormatVersion,
    LEGACY_LAYOUT,
    MANIFEST_PATH,
    PlayMode,
    is_audio_asset,
    is_font_definition,
    is_image_asset,
    is_valid_lottie,
    layout_for,
)

__all__ = [
    # Entities
    "Animation", "Asset", "AudioAsset", "FontAsset", "GlobalInputs", "ImageAsset",
    "StateMachine", "Theme",
    # Registry
    "AssetRegistry",
    # Codec
    "AssetCodec",
    # Vocabulary
    "ArchiveLayout", "CURRENT_LAYOUT", "EntryKind", "FormatVersion",
    "LEGACY_LAYOUT", "MANIFEST_PATH", "PlayMode",
    "is_audio_asset", "is_font_definition", "is_image_asset", "is_valid_lottie", "layout_for",
    # Errors
    "AssetDecodeError", "BundleError", "DanglingReferenceError",
    "DuplicateIdentityError", "ErrorCode", "FetchError",
    "InvalidEntityError", "MalformedArchiveError", "SchemaValidationError",
]
