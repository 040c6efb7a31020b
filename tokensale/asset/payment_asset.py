"""
StablePaymentAsset — in-memory платёжный актив (stable asset, 6 decimals)

Внешний коллаборатор: движок продажи потребляет только успех/неуспех
transfer_from. Эта реализация нужна для локальной работы и тестов;
в проде её место занимает адаптер к реальному ledger.
"""

from tokensale.asset.token import ValueToken
from tokensale.core.domain.units import PAYMENT_DECIMALS
from tokensale.ledger.ledger import Ledger


class StablePaymentAsset(ValueToken):
    """Платёжный актив с фиксированными decimals и начальной эмиссией на issuer."""

    def __init__(
        self,
        ledger: Ledger,
        address: str,
        issuer: str,
        initial_supply: int,
        name: str = "Tether USD",
        symbol: str = "USDT",
        decimals: int = PAYMENT_DECIMALS,
    ):
        super().__init__(ledger, address, name=name, symbol=symbol, decimals=decimals)
        self._check_amount(initial_supply)
        with ledger.transaction("issue"):
            self._mint(issuer, initial_supply)
