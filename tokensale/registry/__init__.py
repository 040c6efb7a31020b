"""Registry — реестр идентичностей покупателей."""

from .holder_registry import HolderRegistry

__all__ = [
    "HolderRegistry",
]
