"""
Manifest projector.

The manifest is never edited by hand. It is recomputed from the
registry every time it is needed, so it cannot drift from the bundle's
actual contents. Projection reads the registry and nothing else.
"""

from __future__ import annotations

from typing import Any, Optional

from lottie_bundle.core.errors import MalformedArchiveError
from lottie_bundle.core.registry import AssetRegistry
from lottie_bundle.core.vocabulary import FormatVersion
from lottie_bundle.schemas.manifest import ManifestV1, ManifestV2, dump_manifest


def _default_active(registry: AssetRegistry) -> Optional[str]:
    active = [a.id for a in registry.animations if a.default_active]
    return active[0] if len(active) == 1 else None


def project_current(registry: AssetRegistry, generator: Optional[str] = None) -> dict[str, Any]:
    animations = []
    for animation in registry.animations:
        themes = registry.themes_of(animation.id)
        animations.append({
            "id":           animation.id,
            "name":         animation.name,
            "initialTheme": animation.initial_theme,
            "background":   animation.background,
            "themes":       themes or None,
        })

    manifest: dict[str, Any] = {
        "version":    FormatVersion.CURRENT.value,
        "generator":  generator,
        "animations": animations,
    }
    if registry.themes:
        manifest["themes"] = [t.id for t in registry.themes]
    if registry.state_machines:
        manifest["stateMachines"] = [s.id for s in registry.state_machines]
    if registry.global_inputs:
        manifest["globalInputs"] = [{"id": g.id, "name": g.name} for g in registry.global_inputs]
    active = _default_active(registry)
    if active:
        manifest["initial"] = {"animation": active}

    return dump_manifest(ManifestV2.model_validate(manifest))


def project_legacy(
    registry: AssetRegistry,
    generator: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    metadata = metadata or {}
    manifest: dict[str, Any] = {
        "version":           FormatVersion.LEGACY.value,
        "generator":         generator,
        "author":            metadata.get("author"),
        "description":       metadata.get("description"),
        "keywords":          metadata.get("keywords"),
        "revision":          metadata.get("revision"),
        "custom":            metadata.get("custom") or None,
        "activeAnimationId": _default_active(registry),
        "animations": [
            {"id": a.id, **a.playback_settings()} for a in registry.animations
        ],
    }
    return dump_manifest(ManifestV1.model_validate(manifest))


def project_manifest(
    registry: AssetRegistry,
    version: FormatVersion,
    generator: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Derive the manifest for ``version`` from the registry.

    Raises:
        MalformedArchiveError: if the bundle holds no animations.
    """
    if not registry.animations:
        raise MalformedArchiveError("Cannot build a manifest for a bundle without animations.")
    if version == FormatVersion.CURRENT:
        return project_current(registry, generator)
    return project_legacy(registry, generator, metadata)
