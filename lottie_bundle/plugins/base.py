"""Plugin capability interface."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from lottie_bundle.bundle import Bundle


@runtime_checkable
class BundlePlugin(Protocol):
    parallel: bool

    async def on_build(self, bundle: "Bundle") -> None: ...


class PluginBase:
    """Optional convenience base. Sequential unless told otherwise."""

    def __init__(self, parallel: bool = False):
        self.parallel = parallel

    async def on_build(self, bundle: "Bundle") -> None:
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(parallel={self.parallel})"



