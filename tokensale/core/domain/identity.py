"""
IdentityRecord — запись идентичности покупателя

Не более одной записи на адрес владельца. id начинаются с 1,
0 зарезервирован как sentinel "нет идентичности".
"""

from pydantic import BaseModel, Field, model_validator


class IdentityRecord(BaseModel):
    """
    Запись держателя: сколько заблокировано и сколько уже выдано.

    Immutable модель (frozen=True): каждое изменение создаёт новый экземпляр,
    поэтому снапшот реестра — это копия словаря без глубокого копирования.
    """

    id: int = Field(..., gt=0, description="Уникальный идентификатор (>= 1)")
    owner: str = Field(..., min_length=1, description="Адрес владельца")
    locked_total: int = Field(default=0, ge=0, description="Всего заблокировано (asset units)")
    claimed_total: int = Field(default=0, ge=0, description="Всего выдано (asset units)")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_claimed_within_locked(self) -> "IdentityRecord":
        """Инвариант: claimed_total <= locked_total."""
        if self.claimed_total > self.locked_total:
            raise ValueError(
                f"claimed_total {self.claimed_total} exceeds locked_total {self.locked_total}"
            )
        return self

    @property
    def unclaimed(self) -> int:
        return self.locked_total - self.claimed_total
