"""
Bundle: the in-memory document for one dotLottie archive.

A Bundle owns an AssetRegistry plus the format version, legacy
metadata, plugin list and the two injected capabilities (AssetCodec for
asset bytes, ArchiveCodec for zip). One caller mutates a bundle at a
time; nothing here locks.

Usage:
    bundle = Bundle()
    bundle.add_animation("bull", data=bull_json)
    bundle.add_theme("dark", data={"rules": [...]})
    bundle.scope_theme("dark", "bull")

    archive = await bundle.to_bytes()           # build + pack
    again   = Bundle.from_bytes(archive)        # parse
"""

from __future__ import annotations

import base64
import copy
import logging
from typing import Any, Iterable, Optional

from lottie_bundle import config
from lottie_bundle.archive.parser import parse
from lottie_bundle.archive.serializer import serialize
from lottie_bundle.archive.utils import load_from_url
from lottie_bundle.archive.zipcodec import ArchiveCodec
from lottie_bundle.core.codec import AssetCodec
from lottie_bundle.core.entities import (
    Animation,
    AudioAsset,
    FontAsset,
    GlobalInputs,
    ImageAsset,
    StateMachine,
    Theme,
)
from lottie_bundle.core.registry import AssetRegistry
from lottie_bundle.core.vocabulary import ArchiveLayout, FormatVersion, layout_for
from lottie_bundle.pipeline import (
    check_references,
    embed_assets,
    extract_assets,
    rename_assets,
    resolve_urls,
    run_plugins,
)
from lottie_bundle.plugins import BundlePlugin, DuplicateImageDetector
from lottie_bundle.projector import project_manifest

logger = logging.getLogger(__name__)


class Bundle:
    """One dotLottie bundle.

    Args:
        version:        Archive layout to build (FormatVersion or "1"/"2").
        codec:          AssetCodec used for fetching and encoding bytes.
        archive_codec:  ArchiveCodec used for zip packing.
        plugins:        Build plugins, run in registration order.
        enable_duplicate_image_optimization:
                        Append a DuplicateImageDetector to the plugins.
        generator:      Generator string for the manifest.
    """

    def __init__(
        self,
        version: "FormatVersion | str" = FormatVersion.CURRENT,
        codec: Optional[AssetCodec] = None,
        archive_codec: Optional[ArchiveCodec] = None,
        plugins: Iterable[BundlePlugin] = (),
        enable_duplicate_image_optimization: bool = False,
        generator: Optional[str] = None,
    ):
        self.version: FormatVersion = FormatVersion.from_string(version)
        self.codec = codec or AssetCodec()
        self.archive_codec = archive_codec or ArchiveCodec()
        self.registry = AssetRegistry()
        self.generator: str = generator or config.GENERATOR
        self.enable_duplicate_image_optimization = enable_duplicate_image_optimization

        # legacy manifest metadata
        self.author:      Optional[str] = None
        self.description: Optional[str] = None
        self.keywords:    Optional[str] = None
        self.revision:    Optional[int] = None
        self.custom:      dict[str, Any] = {}

        self._plugins: list[BundlePlugin] = []
        self.add_plugins(*plugins)
        if enable_duplicate_image_optimization:
            self.add_plugins(DuplicateImageDetector())

    @property
    def layout(self) -> ArchiveLayout:
        return layout_for(self.version)

    @property
    def plugins(self) -> list[BundlePlugin]:
        return list(self._plugins)

    def add_plugins(self, *plugins: BundlePlugin) -> "Bundle":
        for plugin in plugins:
            if not isinstance(plugin, BundlePlugin):
                raise TypeError(f"{plugin!r} is not a plugin (needs 'parallel' and 'on_build').")
            self._plugins.append(plugin)
        return self

    # ── Animations ──────────────────────────────────────────

    def add_animation(
        self,
        id: str,
        data: Optional[dict] = None,
        url: Optional[str] = None,
        **fields,
    ) -> Animation:
        """Add an animation from inline Lottie data or a url.

        Keyword fields are those of Animation (name, initial_theme,
        background, default_active, zip_options, legacy playback fields).

        Raises:
            DuplicateIdentityError: if ``id`` is already in the bundle.
            InvalidEntityError:     if the animation fails validation.
        """
        return self.registry.add_animation(Animation(id=id, data=data, url=url, **fields))

    def update_animation(self, id: str, **changes) -> Animation:
        """Re-validate and replace an animation's fields.

        Theme scoping is kept. Passing new ``data`` releases the assets
        extracted from the old data; the next build extracts them afresh.
        """
        current = self.registry.get_animation(id)
        if current is None:
            raise KeyError(f"No animation with id '{id}'.")
        return self.registry.replace_animation(current.update(**changes))

    def remove_animation(self, id: str) -> "Bundle":
        self.registry.remove_animation(id)
        return self

    def get_animation_entity(self, id: str) -> Optional[Animation]:
        return self.registry.get_animation(id)

    async def get_animation(self, id: str, inline_assets: bool = False) -> Optional[Animation]:
        """Return a detached copy of an animation.

        This is not read-only. If the animation is url-sourced, every
        pending url in the bundle is resolved in place, and inline assets
        in the bundle's own data are extracted into owned assets first
        (idempotent), exactly as build() would.
        Url-sourced assets fetched for ``inline_assets`` keep their bytes.

        With ``inline_assets`` the copy embeds every owned image, audio
        clip and font as a data URL; the bundle's own data keeps pointing
        at archive files.
        """
        animation = self.registry.get_animation(id)
        if animation is None:
            return None
        if not animation.resolved:
            await resolve_urls(self)
            animation = self.registry.get_animation(id)
        extract_assets(self, id)

        data = copy.deepcopy(animation.data)
        if inline_assets:
            owned = self.registry.images_of(id) + self.registry.audio_of(id) + self.registry.fonts_of(id)
            for asset in owned:
                await asset.to_data_url(self.codec)
            data = embed_assets(self, id, data)
        return animation.update(data=data, zip_options=copy.deepcopy(animation.zip_options))

    @property
    def animations(self) -> list[Animation]:
        return self.registry.animations

    # ── Assets ──────────────────────────────────────────────

    @property
    def images(self) -> list[ImageAsset]:
        return self.registry.images

    @property
    def audio(self) -> list[AudioAsset]:
        return self.registry.audio

    @property
    def fonts(self) -> list[FontAsset]:
        return self.registry.fonts

    # ── Themes ──────────────────────────────────────────────

    def add_theme(self, id: str, data: Optional[dict] = None, url: Optional[str] = None, **fields) -> Theme:
        """Add a theme.

        Raises:
            DuplicateIdentityError: if ``id`` is already in the bundle.
            SchemaValidationError:  if ``data`` is not a valid theme.
        """
        return self.registry.add_theme(Theme(id=id, data=data, url=url, **fields))

    def remove_theme(self, id: str) -> "Bundle":
        self.registry.remove_theme(id)
        return self

    def get_theme(self, id: str) -> Optional[Theme]:
        return self.registry.get_theme(id)

    @property
    def themes(self) -> list[Theme]:
        return self.registry.themes

    def scope_theme(self, theme_id: str, animation_id: str) -> "Bundle":
        self.registry.scope_theme(theme_id, animation_id)
        return self

    def unscope_theme(self, theme_id: str, animation_id: str) -> "Bundle":
        self.registry.unscope_theme(theme_id, animation_id)
        return self

    # ── State machines ──────────────────────────────────────

    def add_state_machine(self, id: str, data: dict, **fields) -> StateMachine:
        """Add a state machine. Its animation references are checked at build.

        Raises:
            DuplicateIdentityError: if ``id`` is already in the bundle.
            SchemaValidationError:  if ``data`` is not a valid state machine.
        """
        return self.registry.add_state_machine(StateMachine(id=id, data=data, **fields))

    def remove_state_machine(self, id: str) -> "Bundle":
        self.registry.remove_state_machine(id)
        return self

    def get_state_machine(self, id: str) -> Optional[StateMachine]:
        return self.registry.get_state_machine(id)

    @property
    def state_machines(self) -> list[StateMachine]:
        return self.registry.state_machines

    # ── Global inputs ───────────────────────────────────────

    def add_global_inputs(self, id: str, data: dict, name: Optional[str] = None, **fields) -> GlobalInputs:
        """Add a set of global inputs.

        Raises:
            DuplicateIdentityError: if ``id`` is already in the bundle.
            SchemaValidationError:  if ``data`` is not a valid global inputs document.
        """
        return self.registry.add_global_inputs(GlobalInputs(id=id, data=data, name=name, **fields))

    def remove_global_inputs(self, id: str) -> "Bundle":
        self.registry.remove_global_inputs(id)
        return self

    def get_global_inputs(self, id: str) -> Optional[GlobalInputs]:
        return self.registry.get_global_inputs(id)

    @property
    def global_inputs(self) -> list[GlobalInputs]:
        return self.registry.global_inputs

    # ── Manifest ────────────────────────────────────────────

    @property
    def metadata(self) -> dict[str, Any]:
        return {
            "author":      self.author,
            "description": self.description,
            "keywords":    self.keywords,
            "revision":    self.revision,
            "custom":      self.custom,
        }

    @property
    def manifest(self) -> dict[str, Any]:
        """The manifest as it would be written now. Recomputed on every access."""
        return project_manifest(self.registry, self.version, self.generator, self.metadata)

    # ── Build & export ──────────────────────────────────────

    async def build(self) -> "Bundle":
        """Materialize the bundle: resolve, extract, rename, run plugins, check.

        Raises:
            FetchError:             a url could not be resolved.
            DanglingReferenceError: a state machine plays a missing animation.
        """
        logger.info(f"Building v{self.version.value} bundle with {len(self.animations)} animation(s)")
        await resolve_urls(self)
        for animation in self.registry.animations:
            extract_assets(self, animation.id)
        rename_assets(self)
        await run_plugins(self, self._plugins)
        check_references(self)
        return self

    async def to_bytes(self) -> bytes:
        """Build and pack the bundle into archive bytes."""
        await self.build()
        return await serialize(self)

    async def to_base64(self) -> str:
        return base64.b64encode(await self.to_bytes()).decode("ascii")

    # ── Merge ───────────────────────────────────────────────

    async def merge(self, *bundles: "Bundle") -> "Bundle":
        """A new bundle holding this bundle's contents plus those of ``bundles``.

        Animations are copied with their assets inlined, so each source's
        assets travel with its animations. Theme scoping, state machines
        and global inputs are carried over. Ids must be unique across all
        inputs.

        Raises:
            DuplicateIdentityError: on any id collision.
        """
        merged = Bundle(
            version=self.version,
            codec=self.codec,
            archive_codec=self.archive_codec,
            plugins=self._plugins,
            generator=self.generator,
        )
        merged.author, merged.description, merged.keywords = self.author, self.description, self.keywords
        merged.revision, merged.custom = self.revision, dict(self.custom)

        for source in (self, *bundles):
            for theme in source.themes:
                merged.registry.add_theme(theme.update(data=copy.deepcopy(theme.data)))
            for animation in source.animations:
                copied = await source.get_animation(animation.id, inline_assets=True)
                merged.registry.add_animation(copied)
                for theme_id in source.registry.themes_of(animation.id):
                    merged.registry.scope_theme(theme_id, animation.id)
            for state_machine in source.state_machines:
                merged.registry.add_state_machine(state_machine.update(data=copy.deepcopy(state_machine.data)))
            for global_inputs in source.global_inputs:
                merged.registry.add_global_inputs(global_inputs.update(data=copy.deepcopy(global_inputs.data)))

        logger.info(f"Merged {1 + len(bundles)} bundle(s) into {len(merged.animations)} animation(s)")
        return merged

    # ── Loading ─────────────────────────────────────────────

    @classmethod
    def from_bytes(cls, data: bytes, **options) -> "Bundle":
        """Parse archive bytes. See archive.parser.parse for options."""
        return parse(data, **options)

    @classmethod
    async def from_url(cls, url: str, codec: Optional[AssetCodec] = None, **options) -> "Bundle":
        """Fetch and parse a remote archive.

        Raises:
            FetchError:            the download fails or is not application/zip.
            MalformedArchiveError: the download is not a valid archive.
        """
        codec = codec or AssetCodec()
        data = await load_from_url(url, codec)
        return cls.from_bytes(data, codec=codec, **options)

    # ── Inspection ──────────────────────────────────────────

    def summary(self) -> dict:
        return {"version": self.version.value, "generator": self.generator, **self.registry.summary()}

    def __repr__(self) -> str:
        return (
            f"Bundle(v{self.version.value}, animations={[a.id for a in self.animations]}, "
            f"themes={[t.id for t in self.themes]})"
        )
