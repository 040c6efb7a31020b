"""
Rounds — планирование исполнения покупки по раундам

Чистые функции без состояния:
- next_round_with_capacity: явный ограниченный скан раундов (не более
  len(rounds) шагов), детерминированная стоимость в худшем случае
- plan_fill: раскладка платежа по раундам

Политика исполнения: если платёж превышает остаток текущего раунда,
раунд заполняется целиком (стоимость округляется вверх), курсор переходит
к следующему раунду с ёмкостью, и остаток платежа оценивается по его цене.
Если ёмкость кончилась до полного исполнения, покупка падает целиком.
"""

from dataclasses import dataclass
from typing import Sequence

from tokensale.core.domain.round import Round
from tokensale.core.domain.units import (
    ASSET_DECIMALS,
    PAYMENT_DECIMALS,
    asset_to_payment_ceil,
    payment_to_asset,
)
from tokensale.core.errors import AllRoundsSoldOut, ZeroAmount


@dataclass(frozen=True)
class RoundFill:
    """Часть покупки, исполненная в одном раунде."""

    round_index: int
    asset_amount: int
    payment_amount: int


@dataclass(frozen=True)
class FillPlan:
    """Результат планирования: новые раунды и курсор применяются вызывающим."""

    fills: tuple[RoundFill, ...]
    asset_amount: int
    payment_amount: int
    rounds: tuple[Round, ...]
    cursor: int


def next_round_with_capacity(rounds: Sequence[Round], start: int) -> int | None:
    """Индекс первого раунда с ненулевым остатком, начиная со start."""
    for index in range(max(start, 0), len(rounds)):
        if rounds[index].remaining > 0:
            return index
    return None


def advance_cursor(rounds: Sequence[Round], cursor: int) -> int:
    """
    Курсор после изменения раундов.

    Указывает на первый раунд с ёмкостью не раньше cursor; если ёмкости нет
    нигде, остаётся на последнем раунде.
    """
    found = next_round_with_capacity(rounds, cursor)
    if found is not None:
        return found
    return max(len(rounds) - 1, 0)


def plan_fill(
    rounds: Sequence[Round],
    cursor: int,
    payment_amount: int,
    payment_decimals: int = PAYMENT_DECIMALS,
    asset_decimals: int = ASSET_DECIMALS,
) -> FillPlan:
    """
    Раскладка платежа по раундам начиная с cursor.

    Args:
        rounds: текущие раунды
        cursor: текущий индекс раунда
        payment_amount: платёж (payment units, > 0)

    Returns:
        FillPlan с обновлёнными раундами и курсором

    Raises:
        AllRoundsSoldOut: нет ёмкости до или во время исполнения
        ZeroAmount: платёж конвертируется в 0 asset units
    """
    index = next_round_with_capacity(rounds, cursor)
    if index is None:
        raise AllRoundsSoldOut("All rounds sold out")

    updated = list(rounds)
    fills: list[RoundFill] = []
    remaining_payment = payment_amount

    while remaining_payment > 0:
        if index is None:
            raise AllRoundsSoldOut(
                f"All rounds sold out during fulfilment, {remaining_payment} payment units unfilled"
            )

        current = updated[index]
        wanted = payment_to_asset(remaining_payment, current.price, payment_decimals, asset_decimals)

        if wanted == 0:
            # Остаток платежа меньше минимальной единицы актива по цене раунда
            break

        if wanted <= current.remaining:
            updated[index] = current.with_sold(current.sold + wanted)
            fills.append(RoundFill(index, wanted, remaining_payment))
            remaining_payment = 0
            break

        take = current.remaining
        cost = asset_to_payment_ceil(take, current.price, payment_decimals, asset_decimals)
        updated[index] = current.with_sold(current.total_amount)
        fills.append(RoundFill(index, take, cost))
        remaining_payment -= cost
        index = next_round_with_capacity(updated, index + 1)

    asset_amount = sum(f.asset_amount for f in fills)
    if asset_amount == 0:
        raise ZeroAmount(f"Payment {payment_amount} converts to zero asset units")

    return FillPlan(
        fills=tuple(fills),
        asset_amount=asset_amount,
        payment_amount=payment_amount,
        rounds=tuple(updated),
        cursor=advance_cursor(updated, cursor),
    )
