"""
Assets — продаваемый capped-токен и платёжный актив.
"""

from .capped_asset import CappedAsset
from .payment_asset import StablePaymentAsset
from .token import TransferableAsset, ValueToken

__all__ = [
    "CappedAsset",
    "StablePaymentAsset",
    "TransferableAsset",
    "ValueToken",
]
