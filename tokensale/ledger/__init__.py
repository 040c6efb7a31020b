"""Ledger — сериализованное исполнение, часы и атомарный откат."""

from .context import CallContext
from .ledger import Ledger, LedgerComponent, atomic

__all__ = [
    "CallContext",
    "Ledger",
    "LedgerComponent",
    "atomic",
]
