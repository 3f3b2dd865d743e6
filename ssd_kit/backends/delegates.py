"""
Hardware delegate strategies for the TFLite backend.

A provider knows how to build one delegate object through the runtime's
`load_delegate` function. The backend never checks the platform itself; it
attaches whatever provider it is given.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Callable, Dict, List, Optional

from ..errors import DelegateError


logger = logging.getLogger(__name__)

LoadDelegateFn = Callable[..., Any]

XNNPACK_LIBRARY = "libtensorflowlite_delegate_xnnpack.so"
GPU_LIBRARY = "libtensorflowlite_gpu_delegate.so"

DELEGATE_CHOICES = ("auto", "none", "xnnpack", "gpu")


class DelegateProvider:
    name = "none"

    def create(self, load_delegate: LoadDelegateFn) -> Optional[Any]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class NoDelegate(DelegateProvider):
    """Plain CPU interpreter."""

    def create(self, load_delegate: LoadDelegateFn) -> Optional[Any]:
        return None


class LibraryDelegate(DelegateProvider):
    """Delegate loaded from a shared library through `load_delegate`."""

    def __init__(self, library: str, options: Optional[Dict[str, Any]] = None, *, name: str = "library"):
        if not library:
            raise ValueError("library must be a non-empty string")
        self.library = library
        self.options = dict(options or {})
        self.name = name

    def create(self, load_delegate: LoadDelegateFn) -> Optional[Any]:
        if self.options:
            return load_delegate(self.library, self.options)
        return load_delegate(self.library)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, library={self.library!r})"


class XnnpackDelegate(LibraryDelegate):
    def __init__(self, library: str = XNNPACK_LIBRARY, options: Optional[Dict[str, Any]] = None):
        super().__init__(library, options, name="xnnpack")


class GpuDelegate(LibraryDelegate):
    def __init__(self, library: str = GPU_LIBRARY, options: Optional[Dict[str, Any]] = None):
        super().__init__(library, options, name="gpu")


def current_platform() -> str:
    if sys.platform in ("android", "ios"):
        return sys.platform
    # Python builds for Android before 3.13 report "linux" but expose this hook.
    if hasattr(sys, "getandroidapilevel"):
        return "android"
    return sys.platform


def platform_delegate(platform: Optional[str] = None) -> DelegateProvider:
    """
    Default delegate per platform: XNNPACK on Android, GPU on iOS, none elsewhere.
    """

    p = platform if platform is not None else current_platform()
    if p == "android":
        return XnnpackDelegate()
    if p == "ios":
        return GpuDelegate()
    return NoDelegate()


def resolve_delegate(name: str, platform: Optional[str] = None) -> DelegateProvider:
    chosen = (name or "auto").strip().lower()
    if chosen == "auto":
        return platform_delegate(platform)
    if chosen == "none":
        return NoDelegate()
    if chosen == "xnnpack":
        return XnnpackDelegate()
    if chosen == "gpu":
        return GpuDelegate()
    raise ValueError(f"Unsupported delegate: {name!r}. Choose one of {list(DELEGATE_CHOICES)}.")


def attach_delegates(
    provider: DelegateProvider,
    load_delegate: LoadDelegateFn,
    *,
    fallback_to_cpu: bool = False,
) -> List[Any]:
    """
    Build the `experimental_delegates` list for one provider.

    A load failure raises `DelegateError` unless `fallback_to_cpu` is set, in
    which case it is logged and an empty list is returned.
    """

    try:
        delegate = provider.create(load_delegate)
    except (ValueError, RuntimeError, OSError) as e:
        if not fallback_to_cpu:
            raise DelegateError(provider.name, str(e)) from e
        logger.warning("Delegate %s unavailable (%s); using CPU interpreter", provider.name, e)
        return []
    return [] if delegate is None else [delegate]
