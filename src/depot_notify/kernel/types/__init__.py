"""Kernel value types – public re-export surface."""

from depot_notify.kernel.types.result import Err, Ok, Result

__all__ = ["Err", "Ok", "Result"]
