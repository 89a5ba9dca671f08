"""
lottie-bundle error taxonomy.

Every failure a caller can observe is a BundleError carrying a stable
code from ErrorCode. The categories map onto the points where a bundle
can become unusable:

    malformed archive    manifest.json missing, unparsable, or the
                          bytes are not a zip at all
    dangling reference   an archive entry or a state machine points
                          at an animation the bundle does not hold
    schema validation    a theme or state machine document fails its
                          validator; the structured issues are attached
    duplicate identity   an add call reuses an id already present
    fetch failure        a remote url could not be resolved

None of these are downgraded to warnings. They propagate to the caller.
"""

from __future__ import annotations

from typing import Any, Optional


class ErrorCode:
    ASSET_NOT_FOUND      = "ASSET_NOT_FOUND"
    INVALID_DOTLOTTIE    = "INVALID_DOTLOTTIE"
    INVALID_STATEMACHINE = "INVALID_STATEMACHINE"
    INVALID_THEME        = "INVALID_THEME"
    INVALID_GLOBAL_INPUTS = "INVALID_GLOBAL_INPUTS"
    INVALID_ANIMATION    = "INVALID_ANIMATION"
    INVALID_ENTITY       = "INVALID_ENTITY"
    INVALID_URL          = "INVALID_URL"
    DUPLICATE_ID         = "DUPLICATE_ID"


# ─────────────────────────────────────────────────────────────
# Base
# ─────────────────────────────────────────────────────────────

class BundleError(Exception):
    """Base class for every error raised by lottie-bundle."""

    code: str = ErrorCode.INVALID_DOTLOTTIE

    def __init__(self, message: str, code: Optional[str] = None):
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


# ─────────────────────────────────────────────────────────────
# Archive level
# ─────────────────────────────────────────────────────────────

class MalformedArchiveError(BundleError):
    """Raised when the archive or its manifest cannot be read."""

    code = ErrorCode.INVALID_DOTLOTTIE


class DanglingReferenceError(BundleError):
    """Raised when something refers to an animation the bundle does not hold."""

    code = ErrorCode.ASSET_NOT_FOUND

    def __init__(self, ref: str, referrer: str):
        self.ref = ref
        self.referrer = referrer
        super().__init__(f"{referrer} references '{ref}', which is not part of the bundle.")


class SchemaValidationError(BundleError):
    """Raised when a theme, state machine or global inputs document fails validation.

    The validator's structured issue list is kept in ``issues`` so
    callers can report every problem, not just the first one.
    """

    def __init__(self, kind: str, entity_id: str, issues: list[dict[str, Any]], code: str):
        self.kind = kind
        self.entity_id = entity_id
        self.issues = issues
        first = issues[0]["msg"] if issues else "unknown error"
        super().__init__(
            f"Invalid {kind} '{entity_id}': {len(issues)} "
            f"issue{'' if len(issues) == 1 else 's'} (first: {first})",
            code=code,
        )

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["issues"] = self.issues
        return d


# ─────────────────────────────────────────────────────────────
# Entity level
# ─────────────────────────────────────────────────────────────

class InvalidEntityError(BundleError, ValueError):
    """Raised when an entity is constructed or updated with bad values."""

    code = ErrorCode.INVALID_ENTITY


class DuplicateIdentityError(BundleError, ValueError):
    """Raised when an add call reuses an id that is already registered."""

    code = ErrorCode.DUPLICATE_ID

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"Duplicate {kind} id '{entity_id}' detected, aborting.")


class AssetDecodeError(BundleError):
    """Raised when an asset's bytes or file extension cannot be determined."""

    code = ErrorCode.ASSET_NOT_FOUND


# ─────────────────────────────────────────────────────────────
# Network
# ─────────────────────────────────────────────────────────────

class FetchError(BundleError):
    """Raised when a remote animation, theme or archive cannot be fetched."""

    code = ErrorCode.INVALID_URL

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")
