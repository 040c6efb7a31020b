"""
Domain models and value objects.

Contains fundamental sale entities like Round, Epoch, IdentityRecord, CategoryAllocation.
"""

from tokensale.core.domain.allocation import Category, CategoryAllocation
from tokensale.core.domain.epoch import Epoch
from tokensale.core.domain.identity import IdentityRecord
from tokensale.core.domain.round import Round
from tokensale.core.domain.sale_state import SaleAction, SalePhase, SaleSnapshot
from tokensale.core.domain.units import (
    ASSET_DECIMALS,
    BPS_DENOMINATOR,
    NO_IDENTITY,
    PAYMENT_DECIMALS,
    ZERO_ADDRESS,
    apply_bps,
    asset_to_payment_ceil,
    is_unset_address,
    payment_to_asset,
    scale_factor,
    validate_amount,
)

__all__ = [
    # Units module
    "BPS_DENOMINATOR",
    "PAYMENT_DECIMALS",
    "ASSET_DECIMALS",
    "NO_IDENTITY",
    "ZERO_ADDRESS",
    "scale_factor",
    "payment_to_asset",
    "asset_to_payment_ceil",
    "apply_bps",
    "validate_amount",
    "is_unset_address",
    # Round module
    "Round",
    # Epoch module
    "Epoch",
    # Identity module
    "IdentityRecord",
    # Allocation module
    "Category",
    "CategoryAllocation",
    # Sale state module
    "SalePhase",
    "SaleAction",
    "SaleSnapshot",
]
