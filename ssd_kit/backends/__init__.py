"""
Inference backends for ssd_kit.

Backends are kept in a separate module so core functionality (tensor codec,
annotation) stays lightweight and can be used without installing a TFLite
runtime. Delegate strategies live in `delegates`.
"""

from __future__ import annotations

from .delegates import (
    DelegateProvider,
    GpuDelegate,
    LibraryDelegate,
    NoDelegate,
    XnnpackDelegate,
    platform_delegate,
    resolve_delegate,
)

__all__ = [
    "DelegateProvider",
    "GpuDelegate",
    "LibraryDelegate",
    "NoDelegate",
    "XnnpackDelegate",
    "platform_delegate",
    "resolve_delegate",
]
