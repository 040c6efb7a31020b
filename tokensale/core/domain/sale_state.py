"""
SaleState — фазы продажи и read-модель снапшота

Immutable Pydantic модель снапшота для read surface (дашборды, админ-инструменты).
"""

from enum import Enum

from pydantic import BaseModel, Field

from tokensale.core.domain.round import Round


# =============================================================================
# ENUMS
# =============================================================================


class SalePhase(str, Enum):
    """
    Фаза жизненного цикла продажи.

    Раунды и расписание можно конфигурировать в любом порядке,
    OPEN необратим.
    """

    UNCONFIGURED = "UNCONFIGURED"
    ROUNDS_SET = "ROUNDS_SET"
    SCHEDULE_SET = "SCHEDULE_SET"
    FULLY_CONFIGURED = "FULLY_CONFIGURED"
    OPEN = "OPEN"


class SaleAction(str, Enum):
    """Административное действие, меняющее фазу."""

    CONFIGURE_ROUNDS = "CONFIGURE_ROUNDS"
    CONFIGURE_SCHEDULE = "CONFIGURE_SCHEDULE"
    OPEN_SALE = "OPEN_SALE"


# =============================================================================
# SNAPSHOT MODEL
# =============================================================================


class SaleSnapshot(BaseModel):
    """
    Снапшот состояния продажи на момент ts.

    Содержит всё, что нужно для отображения текущего раунда и прогресса.
    """

    schema_version: int = Field(..., ge=1, description="Версия схемы состояния")
    ts: int = Field(..., ge=0, description="Время снапшота (unix, секунды)")
    phase: SalePhase = Field(..., description="Фаза продажи")
    current_round_index: int = Field(..., ge=0, description="Индекс текущего раунда")
    rounds: list[Round] = Field(default_factory=list, description="Раунды")
    vested_bps: int = Field(..., ge=0, le=10_000, description="Накопленный vested bps")
    next_unlock_time: int | None = Field(None, description="Старт следующей эпохи")
    paused: bool = Field(default=False, description="Продажа на паузе (V2)")

    model_config = {"frozen": True}

    @property
    def total_sold(self) -> int:
        return sum(r.sold for r in self.rounds)

    @property
    def total_supply_for_sale(self) -> int:
        return sum(r.total_amount for r in self.rounds)
