"""
lottie-bundle: build, parse and convert dotLottie archives.

    from lottie_bundle import Bundle, DuplicateImageDetector

    bundle = Bundle(enable_duplicate_image_optimization=True)
    bundle.add_animation("bull", data=bull_json)
    archive = await bundle.to_bytes()

    parsed = Bundle.from_bytes(archive)
    legacy = await to_legacy(archive)
"""

from lottie_bundle.config import __version__, configure
from lottie_bundle.bundle import Bundle
from lottie_bundle.bridge import convert, sniff_version, to_current, to_legacy
from lottie_bundle.core import (
    Animation,
    AssetCodec,
    AssetRegistry,
    AudioAsset,
    BundleError,
    DanglingReferenceError,
    DuplicateIdentityError,
    ErrorCode,
    FetchError,
    FontAsset,
    FormatVersion,
    GlobalInputs,
    ImageAsset,
    InvalidEntityError,
    MalformedArchiveError,
    PlayMode,
    SchemaValidationError,
    StateMachine,
    Theme,
)
from lottie_bundle.plugins import BundlePlugin, DuplicateImageDetector, PluginBase

__all__ = [
    "__version__", "configure",
    # Bundle
    "Bundle", "BundlePlugin", "DuplicateImageDetector", "PluginBase",
    # Version bridge
    "convert", "sniff_version", "to_current", "to_legacy",
    # Entities
    "Animation", "AudioAsset", "FontAsset", "GlobalInputs", "ImageAsset", "StateMachine", "Theme",
    "AssetCodec", "AssetRegistry", "FormatVersion", "PlayMode",
    # Errors
    "BundleError", "DanglingReferenceError", "DuplicateIdentityError", "ErrorCode",
    "FetchError", "InvalidEntityError", "MalformedArchiveError", "SchemaValidationError",
]
