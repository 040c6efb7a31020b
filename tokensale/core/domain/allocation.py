"""
CategoryAllocation — казначейские категории распределения

Пять фиксированных категорий, известных на момент развёртывания.
Каждая категория выплачивается на свой кошелёк не более одного раза
на каждое заданное значение amount.
"""

from enum import IntEnum

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class Category(IntEnum):
    """Казначейская категория (числовые id фиксированы)."""

    ECOSYSTEM = 0
    COMMUNITY = 1
    TEAM = 2
    RESERVE = 3
    PARTNERSHIP = 4


# =============================================================================
# ALLOCATION MODEL
# =============================================================================


class CategoryAllocation(BaseModel):
    """
    Состояние категории.

    amount обнуляется после выплаты (категория считается израсходованной);
    disbursed_total накапливает всё выплаченное за время жизни категории.
    """

    category: Category = Field(..., description="Категория")
    wallet: str | None = Field(None, description="Кошелёк получателя (None = не задан)")
    amount: int = Field(default=0, ge=0, description="Сумма к выплате (asset units)")
    disbursed: bool = Field(default=False, description="Выплачена ли текущая сумма")
    disbursed_total: int = Field(default=0, ge=0, description="Всего выплачено")

    model_config = {"frozen": True}
