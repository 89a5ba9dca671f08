"""
lottie-bundle asset registry.

The registry is the single source of truth for what a bundle contains.
Animations, themes, state machines and global inputs live in
insertion-ordered maps keyed by id. Binary assets are not keyed
globally: two animations can both embed an asset called "image_0", so
assets are owned per animation.

TWO ADJACENCY MAPS keep cross-references honest:

    ownership   animation id  ──→  [ImageAsset, AudioAsset, FontAsset, ...]  (ordered)
                asset         ──→  {animation id, ...}

    scoping     theme id      ──→  {animation id, ...}
                animation id  ──→  {theme id, ...}

Both sides of each map are only ever changed together, inside this
class. Nothing else infers ownership from animation data.

Insertion order is load-bearing: the renaming pass numbers assets in
(animation order, asset order) and the duplicate image detector picks
the first asset it meets as a cluster's canonical copy.

Usage:
    reg = AssetRegistry()
    reg.add_animation(Animation("bull", data=lottie_json))
    reg.attach_asset("bull", ImageAsset("img_0", "img_0.png", data=data_url))
    reg.add_theme(Theme("dark", data={"rules": []}))
    reg.scope_theme("dark", "bull")

    reg.owners_of(image)            # → ["bull"]
    reg.remove_theme("dark")        # unscopes "bull" as well
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

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
from lottie_bundle.core.errors import DanglingReferenceError, DuplicateIdentityError
from lottie_bundle.core.vocabulary import FONT_ASSET_DIR, is_audio_asset, is_image_asset

logger = logging.getLogger(__name__)

ASSET_KINDS = ("image", "audio", "font")

_REFERENCE_PREDICATES = {
    "image": is_image_asset,
    "audio": is_audio_asset,
}


def reference_path(kind: str, file_name: str) -> str:
    """The string an animation embeds to point at an asset file."""
    return f"{FONT_ASSET_DIR}{file_name}" if kind == "font" else file_name


def reference_slots(animation: Animation, kind: str) -> list[tuple[dict, str]]:
    """(entry, key) pairs in an animation's data that can point at a ``kind`` asset."""
    if kind == "font":
        return [(font, "fPath") for font in animation.font_definitions]
    predicate = _REFERENCE_PREDICATES[kind]
    return [(entry, "p") for entry in animation.lottie_assets if predicate(entry)]


class AssetRegistry:
    """Owned collections plus the ownership and scoping adjacency maps."""

    def __init__(self):
        self._animations:     dict[str, Animation]    = {}
        self._themes:         dict[str, Theme]        = {}
        self._state_machines: dict[str, StateMachine] = {}
        self._global_inputs:  dict[str, GlobalInputs] = {}

        # ownership: animation id → kind → ordered assets; asset → owners
        self._owned:  dict[str, dict[str, list[Asset]]] = {}
        self._owners: dict[Asset, dict[str, None]]      = {}

        # scoping: theme id ↔ animation ids
        self._theme_scope:      dict[str, dict[str, None]] = {}
        self._animation_themes: dict[str, dict[str, None]] = {}

    # ── Animations ──────────────────────────────────────────

    def add_animation(self, animation: Animation) -> Animation:
        """Register an animation. Raises DuplicateIdentityError on id reuse."""
        if animation.id in self._animations:
            raise DuplicateIdentityError("animation", animation.id)
        self._animations[animation.id] = animation
        self._owned[animation.id] = {kind: [] for kind in ASSET_KINDS}
        self._animation_themes[animation.id] = {}
        logger.debug(f"Added animation '{animation.id}'")
        return animation

    def replace_animation(self, animation: Animation) -> Animation:
        """Swap in an updated entity for an existing id.

        Theme scoping is kept. Asset ownership is kept only while the
        animation data is the same object: new data means the old owned
        assets no longer describe it, so they are released and the next
        build extracts from the new data.
        """
        current = self._animations.get(animation.id)
        if current is None:
            raise KeyError(f"No animation with id '{animation.id}'.")
        if animation.data is not current.data:
            self._release_assets(animation.id)
        self._animations[animation.id] = animation
        return animation

    def remove_animation(self, animation_id: str) -> Optional[Animation]:
        """Remove an animation and sever its links. Unknown ids are a no-op."""
        animation = self._animations.pop(animation_id, None)
        if animation is None:
            return None

        for theme_id in list(self._animation_themes.get(animation_id, {})):
            self._theme_scope.get(theme_id, {}).pop(animation_id, None)
        self._animation_themes.pop(animation_id, None)

        self._release_assets(animation_id)
        self._owned.pop(animation_id, None)

        logger.debug(f"Removed animation '{animation_id}'")
        return animation

    def _release_assets(self, animation_id: str) -> None:
        owned = self._owned.get(animation_id, {})
        released = 0
        for assets in owned.values():
            for asset in assets:
                owners = self._owners.get(asset)
                if owners is not None:
                    owners.pop(animation_id, None)
                    if not owners:
                        del self._owners[asset]
                released += 1
            assets.clear()
        if released:
            logger.debug(f"Released {released} asset(s) of animation '{animation_id}'")

    def get_animation(self, animation_id: str) -> Optional[Animation]:
        return self._animations.get(animation_id)

    @property
    def animations(self) -> list[Animation]:
        return list(self._animations.values())

    # ── Themes ──────────────────────────────────────────────

    def add_theme(self, theme: Theme) -> Theme:
        if theme.id in self._themes:
            raise DuplicateIdentityError("theme", theme.id)
        self._themes[theme.id] = theme
        self._theme_scope[theme.id] = {}
        return theme

    def replace_theme(self, theme: Theme) -> Theme:
        if theme.id not in self._themes:
            raise KeyError(f"No theme with id '{theme.id}'.")
        self._themes[theme.id] = theme
        return theme

    def remove_theme(self, theme_id: str) -> Optional[Theme]:
        """Remove a theme, unscoping it from every animation. Unknown ids are a no-op."""
        theme = self._themes.pop(theme_id, None)
        if theme is None:
            return None

        for animation_id in self._theme_scope.pop(theme_id, {}):
            self._animation_themes.get(animation_id, {}).pop(theme_id, None)

        for animation in self.animations:
            if animation.initial_theme == theme_id:
                self.replace_animation(animation.update(initial_theme=None))

        logger.debug(f"Removed theme '{theme_id}'")
        return theme

    def get_theme(self, theme_id: str) -> Optional[Theme]:
        return self._themes.get(theme_id)

    @property
    def themes(self) -> list[Theme]:
        return list(self._themes.values())

    # ── Scoping ─────────────────────────────────────────────

    def scope_theme(self, theme_id: str, animation_id: str) -> None:
        """Scope a theme to an animation. Both must already be registered."""
        if theme_id not in self._themes:
            raise DanglingReferenceError(theme_id, f"Scoping to animation '{animation_id}'")
        if animation_id not in self._animations:
            raise DanglingReferenceError(animation_id, f"Theme '{theme_id}'")
        self._theme_scope[theme_id][animation_id] = None
        self._animation_themes[animation_id][theme_id] = None

    def unscope_theme(self, theme_id: str, animation_id: str) -> None:
        self._theme_scope.get(theme_id, {}).pop(animation_id, None)
        self._animation_themes.get(animation_id, {}).pop(theme_id, None)

    def themes_of(self, animation_id: str) -> list[str]:
        return list(self._animation_themes.get(animation_id, {}))

    def animations_for_theme(self, theme_id: str) -> list[str]:
        return list(self._theme_scope.get(theme_id, {}))

    # ── State machines ──────────────────────────────────────

    def add_state_machine(self, state_machine: StateMachine) -> StateMachine:
        if state_machine.id in self._state_machines:
            raise DuplicateIdentityError("state machine", state_machine.id)
        self._state_machines[state_machine.id] = state_machine
        return state_machine

    def remove_state_machine(self, state_machine_id: str) -> Optional[StateMachine]:
        return self._state_machines.pop(state_machine_id, None)

    def get_state_machine(self, state_machine_id: str) -> Optional[StateMachine]:
        return self._state_machines.get(state_machine_id)

    @property
    def state_machines(self) -> list[StateMachine]:
        return list(self._state_machines.values())

    # ── Global inputs ───────────────────────────────────────

    def add_global_inputs(self, global_inputs: GlobalInputs) -> GlobalInputs:
        if global_inputs.id in self._global_inputs:
            raise DuplicateIdentityError("global inputs", global_inputs.id)
        self._global_inputs[global_inputs.id] = global_inputs
        return global_inputs

    def remove_global_inputs(self, global_inputs_id: str) -> Optional[GlobalInputs]:
        return self._global_inputs.pop(global_inputs_id, None)

    def get_global_inputs(self, global_inputs_id: str) -> Optional[GlobalInputs]:
        return self._global_inputs.get(global_inputs_id)

    @property
    def global_inputs(self) -> list[GlobalInputs]:
        return list(self._global_inputs.values())

    # ── Ownership ───────────────────────────────────────────

    def attach_asset(self, animation_id: str, asset: Asset) -> Asset:
        """Make ``animation_id`` an owner of ``asset``. Re-attaching is a no-op."""
        if animation_id not in self._animations:
            raise DanglingReferenceError(animation_id, f"{asset.kind.capitalize()} '{asset.id}'")
        owned = self._owned[animation_id][asset.kind]
        if not any(a is asset for a in owned):
            owned.append(asset)
        self._owners.setdefault(asset, {})[animation_id] = None
        return asset

    def detach_asset(self, animation_id: str, asset: Asset) -> None:
        owned = self._owned.get(animation_id, {}).get(asset.kind)
        if owned is not None:
            owned[:] = [a for a in owned if a is not asset]
        owners = self._owners.get(asset)
        if owners is not None:
            owners.pop(animation_id, None)
            if not owners:
                del self._owners[asset]

    def assets_of(self, animation_id: str, kind: str) -> list[Asset]:
        """Assets of one kind owned by an animation, in attach order."""
        return list(self._owned.get(animation_id, {}).get(kind, []))

    def images_of(self, animation_id: str) -> list[ImageAsset]:
        return self.assets_of(animation_id, "image")

    def audio_of(self, animation_id: str) -> list[AudioAsset]:
        return self.assets_of(animation_id, "audio")

    def owners_of(self, asset: Asset) -> list[str]:
        return list(self._owners.get(asset, {}))

    def _unique_assets(self, kind: str) -> list[Asset]:
        seen: dict[Asset, None] = {}
        for owned in self._owned.values():
            for asset in owned[kind]:
                seen.setdefault(asset, None)
        return list(seen)

    @property
    def images(self) -> list[ImageAsset]:
        """Every distinct image, in animation then attach order."""
        return self._unique_assets("image")

    @property
    def audio(self) -> list[AudioAsset]:
        return self._unique_assets("audio")

    def fonts_of(self, animation_id: str) -> list[FontAsset]:
        return self.assets_of(animation_id, "font")

    @property
    def fonts(self) -> list[FontAsset]:
        return self._unique_assets("font")

    # ── Reference rewriting ─────────────────────────────────

    def references_to(self, asset: Asset, owners: Optional[Iterable[str]] = None) -> list[tuple[dict, str]]:
        """(entry, key) slots in owners' data that point at ``asset``.

        Images and audio are referenced by an ``assets`` entry of the
        right shape whose ``p`` is the file name. Fonts are referenced by
        a ``fonts.list`` entry whose ``fPath`` is ``/f/<file name>``.
        """
        target = reference_path(asset.kind, asset.file_name)
        refs = []
        for animation_id in (owners if owners is not None else self.owners_of(asset)):
            animation = self._animations.get(animation_id)
            if animation is None:
                continue
            for entry, key in reference_slots(animation, asset.kind):
                if entry.get(key) == target:
                    refs.append((entry, key))
        return refs

    def rename_assets(self, renames: list[tuple[Asset, str]]) -> None:
        """Rename assets and rewrite every owner's embedded references.

        All references are resolved against the names as they stand
        before the batch, then names and references are updated
        together, so a batch that swaps or shifts names never crosses
        wires. An asset listed more than once ends up with its last name.
        """
        snapshot = [(asset, self.references_to(asset)) for asset, _ in renames]
        final: dict[Asset, str] = {}
        for asset, new_file_name in renames:
            final[asset] = new_file_name
        for asset, refs in snapshot:
            new_path = reference_path(asset.kind, final[asset])
            for entry, key in refs:
                entry[key] = new_path
        for asset, new_file_name in final.items():
            if asset.file_name != new_file_name:
                logger.debug(f"Renamed {asset.kind} '{asset.file_name}' → '{new_file_name}'")
            asset.file_name = new_file_name

    def rename_asset(self, asset: Asset, new_file_name: str) -> None:
        self.rename_assets([(asset, new_file_name)])

    def rewrite_references(self, animation_ids: Iterable[str], kind: str, old_path: str, new_path: str) -> int:
        """Point every ``kind`` reference equal to ``old_path`` at ``new_path``."""
        count = 0
        for animation_id in animation_ids:
            animation = self._animations.get(animation_id)
            if animation is None:
                continue
            for entry, key in reference_slots(animation, kind):
                if entry.get(key) == old_path:
                    entry[key] = new_path
                    count += 1
        return count

    # ── Inspection ──────────────────────────────────────────

    def summary(self) -> dict:
        return {
            "animations":     [a.id for a in self.animations],
            "images":         [i.file_name for i in self.images],
            "audio":          [a.file_name for a in self.audio],
            "fonts":          [f.file_name for f in self.fonts],
            "themes":         {t.id: self.animations_for_theme(t.id) for t in self.themes},
            "state_machines": [s.id for s in self.state_machines],
            "global_inputs":  [g.id for g in self.global_inputs],
        }

    def __repr__(self) -> str:
        return (
            f"AssetRegistry(animations={len(self._animations)}, "
            f"images={len(self.images)}, audio={len(self.audio)}, fonts={len(self.fonts)}, "
            f"themes={len(self._themes)}, state_machines={len(self._state_machines)}, "
            f"global_inputs={len(self._global_inputs)})"
        )
