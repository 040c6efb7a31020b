"""
Units — Централизованный модуль конверсии денежных единиц

Единственный допустимый способ преобразований между:
- payment units (наименьшие единицы платёжного актива, 6 decimals)
- asset units (наименьшие единицы продаваемого актива, 18 decimals)
- bps (базисные пункты, 1/10000)

Вся арифметика целочисленная (fixed-point). Усечение всегда в пользу продавца:
количество выдаваемого актива округляется вниз, стоимость вверх.

ЗАПРЕЩЕНО смешивать единицы без явного конвертера из этого модуля.
"""

from typing import Final


# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Знаменатель базисных пунктов (100%)
BPS_DENOMINATOR: Final[int] = 10_000

# Decimals платёжного актива (stable asset)
PAYMENT_DECIMALS: Final[int] = 6

# Decimals продаваемого актива
ASSET_DECIMALS: Final[int] = 18

# Sentinel "нет идентичности"
NO_IDENTITY: Final[int] = 0

# Нулевой адрес трактуется как "не задан"
ZERO_ADDRESS: Final[str] = "0x" + "0" * 40


# =============================================================================
# БАЗОВЫЕ КОНВЕРТЕРЫ
# =============================================================================


def scale_factor(payment_decimals: int = PAYMENT_DECIMALS, asset_decimals: int = ASSET_DECIMALS) -> int:
    """
    Множитель масштабирования payment units → asset units.

    Платёжный актив имеет меньше decimals, поэтому масштабируем вверх.

    Raises:
        ValueError: Если у платёжного актива больше decimals, чем у продаваемого
    """
    if payment_decimals > asset_decimals:
        raise ValueError(
            f"Payment decimals {payment_decimals} exceed asset decimals {asset_decimals}"
        )
    return 10 ** (asset_decimals - payment_decimals)


def payment_to_asset(
    payment_amount: int,
    price: int,
    payment_decimals: int = PAYMENT_DECIMALS,
    asset_decimals: int = ASSET_DECIMALS,
) -> int:
    """
    Конверсия: payment units → asset units по цене раунда.

    price — payment units за один целый asset unit, поэтому:
        asset = payment * scale * 10^payment_decimals // price

    Усечение вниз (в пользу продавца).

    Args:
        payment_amount: Сумма в наименьших единицах платёжного актива
        price: Цена раунда (payment units за 1 целый asset)

    Returns:
        Количество asset units
    """
    if price <= 0:
        raise ValueError(f"Price must be positive: {price}")
    if payment_amount < 0:
        raise ValueError(f"Payment amount cannot be negative: {payment_amount}")

    scaled = payment_amount * scale_factor(payment_decimals, asset_decimals)
    return scaled * 10**payment_decimals // price


def asset_to_payment_ceil(
    asset_amount: int,
    price: int,
    payment_decimals: int = PAYMENT_DECIMALS,
    asset_decimals: int = ASSET_DECIMALS,
) -> int:
    """
    Конверсия: asset units → стоимость в payment units.

    Округление вверх (в пользу продавца): покупатель никогда не получает
    asset дешевле цены раунда.
    """
    if price <= 0:
        raise ValueError(f"Price must be positive: {price}")

    numerator = asset_amount * price
    denominator = 10**asset_decimals
    return -(-numerator // denominator)


def apply_bps(amount: int, bps: int) -> int:
    """
    Доля amount в базисных пунктах, усечение вниз.

    apply_bps(x, 10000) == x для любого x.
    """
    if not 0 <= bps <= BPS_DENOMINATOR:
        raise ValueError(f"bps out of range [0, {BPS_DENOMINATOR}]: {bps}")
    return amount * bps // BPS_DENOMINATOR


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_amount(amount: int) -> None:
    """
    Проверка, что сумма — неотрицательное целое.

    Raises:
        ValueError: Если сумма отрицательная или не int
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"Amount must be an integer: {amount!r}")
    if amount < 0:
        raise ValueError(f"Amount cannot be negative: {amount}")


def is_unset_address(address: str | None) -> bool:
    """None, пустая строка и нулевой адрес означают "адрес не задан"."""
    return not address or address.lower() == ZERO_ADDRESS
