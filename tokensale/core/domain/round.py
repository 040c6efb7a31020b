"""
Round — Модель ценового раунда продажи

Immutable Pydantic модель. Раунды конфигурируются один раз, после чего
меняется только sold, через создание нового экземпляра (with_sold).
"""

from pydantic import BaseModel, Field, model_validator


class Round(BaseModel):
    """
    Ценовой раунд.

    price — payment units (6 decimals) за один целый asset unit.
    total_amount, sold — в asset units (18 decimals).
    """

    price: int = Field(..., gt=0, description="Цена: payment units за 1 целый asset")
    total_amount: int = Field(..., ge=0, description="Объём раунда (asset units)")
    sold: int = Field(default=0, ge=0, description="Продано (asset units)")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_sold_within_total(self) -> "Round":
        """Инвариант: sold <= total_amount."""
        if self.sold > self.total_amount:
            raise ValueError(
                f"sold {self.sold} exceeds total_amount {self.total_amount}"
            )
        return self

    @property
    def remaining(self) -> int:
        """Оставшаяся ёмкость раунда (asset units)."""
        return self.total_amount - self.sold

    @property
    def is_exhausted(self) -> bool:
        return self.remaining == 0

    def with_sold(self, sold: int) -> "Round":
        """Новый экземпляр раунда с обновлённым sold (валидируется заново)."""
        return Round(price=self.price, total_amount=self.total_amount, sold=sold)
