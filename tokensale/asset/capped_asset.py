"""
CappedAsset — mintable value-токен с неизменяемым максимальным supply

КРИТИЧЕСКИЙ ИНВАРИАНТ: total_minted <= cap всегда.
mint сверх cap падает с CapExceeded, total_minted не меняется.
"""

import logging
from typing import Any

from tokensale.asset.token import ValueToken
from tokensale.core.domain.units import ASSET_DECIMALS
from tokensale.core.errors import CapExceeded, InvalidInput, NotAdmin
from tokensale.ledger.context import CallContext
from tokensale.ledger.ledger import Ledger, atomic
from tokensale.upgrade.versioning import Upgradeable, reinitializer

logger = logging.getLogger(__name__)


class CappedAsset(Upgradeable, ValueToken):
    """Продаваемый актив с hard cap."""

    STATE_FIELDS = ValueToken.STATE_FIELDS + (
        "_total_minted", "_cap", "admin", "name", "symbol", "decimals",
    )
    STATE_LAYOUT = {
        1: (
            "admin",
            "name",
            "symbol",
            "decimals",
            "cap",
            "total_minted",
            "balances",
            "allowances",
        ),
    }
    STATE_CONTRACT = "capped_asset"

    def __init__(
        self,
        ledger: Ledger,
        address: str,
        admin: str,
        cap: int,
        name: str = "SaleToken",
        symbol: str = "SALE",
        decimals: int = ASSET_DECIMALS,
    ):
        self.admin = ""
        self._cap = 0
        self._total_minted = 0
        super().__init__(ledger, address, name=name, symbol=symbol, decimals=decimals)
        self.initialize(admin, cap)

    @reinitializer(1)
    def initialize(self, admin: str, cap: int) -> None:
        if not admin:
            raise InvalidInput("Admin address must be non-empty")
        self._check_amount(cap)
        self.admin = admin
        self._cap = cap

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    @property
    def cap(self) -> int:
        return self._cap

    @property
    def total_minted(self) -> int:
        return self._total_minted

    @property
    def mintable(self) -> int:
        """Сколько ещё можно выпустить до cap."""
        return self._cap - self._total_minted

    # -------------------------------------------------------------------------
    # Mint
    # -------------------------------------------------------------------------

    @atomic
    def mint(self, ctx: CallContext, to: str, amount: int) -> None:
        """
        Выпуск amount на адрес to.

        Raises:
            NotAdmin: вызывающий не admin
            CapExceeded: total_minted + amount > cap
        """
        if ctx.caller != self.admin:
            raise NotAdmin(f"{ctx.caller} is not admin of {self.symbol}")
        self._check_amount(amount)

        if self._total_minted + amount > self._cap:
            raise CapExceeded(
                f"{self.symbol}: minting {amount} exceeds cap "
                f"({self._total_minted} minted of {self._cap})"
            )

        self._total_minted += amount
        self._mint(to, amount)
        logger.info("%s minted %d to %s (%d/%d)", self.symbol, amount, to, self._total_minted, self._cap)

    # -------------------------------------------------------------------------
    # Persisted state
    # -------------------------------------------------------------------------

    def _dump_state(self) -> dict[str, Any]:
        return {
            "admin": self.admin,
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "cap": self._cap,
            "total_minted": self._total_minted,
            "balances": dict(self._balances),
            "allowances": [
                {"owner": owner, "spender": spender, "amount": amount}
                for (owner, spender), amount in self._allowances.items()
            ],
        }

    def _apply_state(self, fields: dict[str, Any]) -> None:
        if fields["total_minted"] > fields["cap"]:
            raise InvalidInput(
                f"Persisted total_minted {fields['total_minted']} exceeds cap {fields['cap']}"
            )
        self.admin = fields["admin"]
        self.name = fields["name"]
        self.symbol = fields["symbol"]
        self.decimals = fields["decimals"]
        self._cap = fields["cap"]
        self._total_minted = fields["total_minted"]
        self._balances = dict(fields["balances"])
        self._total_supply = sum(self._balances.values())
        self._allowances = {
            (item["owner"], item["spender"]): item["amount"] for item in fields["allowances"]
        }
