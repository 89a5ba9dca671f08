"""
Build plugins.

A plugin is anything with a ``parallel`` flag and an async
``on_build(bundle)``. Bundle.build() runs every parallel plugin
concurrently and waits for all of them, then runs the sequential ones
one at a time in registration order. Plugins see the bundle after
remote data is resolved and inline assets are extracted, and before
the manifest is projected and the archive is packed.

    class StripNames(PluginBase):
        async def on_build(self, bundle):
            for animation in bundle.animations:
                animation.data.pop("nm", None)

    bundle.add_plugins(StripNames(), DuplicateImageDetector())
"""

from lottie_bundle.plugins.base import BundlePlugin, PluginBase
from lottie_bundle.plugins.duplicate_images import DuplicateImageDetector

__all__ = ["BundlePlugin", "DuplicateImageDetector", "PluginBase"]
