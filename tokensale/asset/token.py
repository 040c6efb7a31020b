"""
ValueToken — стандартная семантика value-токена

Балансы и allowances. Перевод атомарен: баланс либо перемещается целиком,
либо операция падает (частичных переводов нет).

Используется как основа для CappedAsset и для in-memory платёжного актива.
"""

import logging
from typing import Protocol, runtime_checkable

from tokensale.core.domain.units import validate_amount
from tokensale.core.errors import InsufficientAllowance, InsufficientBalance, InvalidInput
from tokensale.ledger.context import CallContext
from tokensale.ledger.ledger import Ledger, LedgerComponent, atomic

logger = logging.getLogger(__name__)


# =============================================================================
# INTERFACE
# =============================================================================


@runtime_checkable
class TransferableAsset(Protocol):
    """
    Граница внешнего актива.

    Движок потребляет только успех/неуспех transfer/transfer_from:
    False или AssetError трактуются как отказ внешнего ledger.
    """

    address: str
    decimals: int

    def balance_of(self, address: str) -> int: ...

    def transfer(self, ctx: CallContext, to: str, amount: int) -> bool: ...

    def transfer_from(self, ctx: CallContext, owner: str, to: str, amount: int) -> bool: ...


# =============================================================================
# VALUE TOKEN
# =============================================================================


class ValueToken(LedgerComponent):
    """Value-токен с балансами и allowances."""

    STATE_FIELDS = ("_balances", "_allowances", "_total_supply")

    def __init__(self, ledger: Ledger, address: str, name: str, symbol: str, decimals: int):
        if not name or not symbol:
            raise ValueError("Token name and symbol must be non-empty")
        if decimals < 0:
            raise ValueError(f"decimals cannot be negative: {decimals}")

        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._total_supply = 0
        super().__init__(ledger, address)

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    @atomic
    def transfer(self, ctx: CallContext, to: str, amount: int) -> bool:
        """
        Перевод amount с баланса ctx.caller на to.

        Raises:
            InsufficientBalance: недостаточно средств
        """
        self._check_amount(amount)
        self._move(ctx.caller, to, amount)
        return True

    @atomic
    def approve(self, ctx: CallContext, spender: str, amount: int) -> bool:
        """Разрешение spender тратить amount с баланса ctx.caller (перезапись)."""
        self._check_amount(amount)
        if not spender:
            raise InvalidInput("Spender address must be non-empty")
        self._allowances[(ctx.caller, spender)] = amount
        return True

    @atomic
    def transfer_from(self, ctx: CallContext, owner: str, to: str, amount: int) -> bool:
        """
        Перевод от имени owner силами ctx.caller (spender).

        Raises:
            InsufficientAllowance: allowance меньше amount
            InsufficientBalance: баланс owner меньше amount
        """
        self._check_amount(amount)
        spender = ctx.caller
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientAllowance(
                f"{self.symbol}: allowance {allowed} < {amount} for {spender} on {owner}"
            )
        self._allowances[(owner, spender)] = allowed - amount
        self._move(owner, to, amount)
        return True

    def _mint(self, to: str, amount: int) -> None:
        if not to:
            raise InvalidInput("Mint recipient must be non-empty")
        self._balances[to] = self.balance_of(to) + amount
        self._total_supply += amount

    def _move(self, sender: str, to: str, amount: int) -> None:
        if not to:
            raise InvalidInput("Transfer recipient must be non-empty")
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(
                f"{self.symbol}: balance of {sender} is {balance}, need {amount}"
            )
        self._balances[sender] = balance - amount
        self._balances[to] = self.balance_of(to) + amount
        logger.debug("%s transfer %s -> %s: %d", self.symbol, sender, to, amount)

    @staticmethod
    def _check_amount(amount: int) -> None:
        try:
            validate_amount(amount)
        except ValueError as e:
            raise InvalidInput(str(e)) from e
