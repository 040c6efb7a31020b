"""Upgrade — версионированная схема состояния и одноразовые re-initializer."""

from .versioning import Upgradeable, check_append_only, reinitializer

__all__ = [
    "Upgradeable",
    "check_append_only",
    "reinitializer",
]
