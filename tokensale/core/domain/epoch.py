"""
Epoch — контрольная точка vesting-расписания

Каждая эпоха с наступлением start_time освобождает дополнительную долю
(bps) заблокированного баланса держателя.
"""

from pydantic import BaseModel, Field

from tokensale.core.domain.units import BPS_DENOMINATOR


class Epoch(BaseModel):
    """Эпоха vesting: момент старта (unix seconds) и доля в bps."""

    start_time: int = Field(..., ge=0, description="Время старта эпохи (unix, секунды)")
    bps: int = Field(..., ge=0, le=BPS_DENOMINATOR, description="Доля эпохи в bps")

    model_config = {"frozen": True}

    def has_started(self, now: int) -> bool:
        return self.start_time <= now
