"""
VestingSchedule — накопленная доля освобождения по эпохам

Чистая функция (эпохи, now) → накопленный bps. Монотонно не убывает по
времени по построению: суммируются bps всех эпох, чей старт наступил.

ИНВАРИАНТЫ:
1. Список эпох непуст (иначе NoEpochs)
2. sum(bps) == 10000 ровно (иначе EpochBpsInvalid)
3. После старта последней эпохи vested_amount(locked) == locked
"""

import logging
from typing import Iterable, Sequence

from pydantic import ValidationError

from tokensale.core.domain.epoch import Epoch
from tokensale.core.domain.units import BPS_DENOMINATOR, apply_bps
from tokensale.core.errors import EpochBpsInvalid, NoEpochs

logger = logging.getLogger(__name__)


def build_epochs(raw: Iterable[Epoch | dict | tuple[int, int]]) -> list[Epoch]:
    """
    Нормализация входа в список Epoch.

    Принимает Epoch, dict {start_time, bps} или пары (start_time, bps).

    Raises:
        EpochBpsInvalid: элемент не проходит валидацию (bps вне [0, 10000] и т.п.)
    """
    epochs: list[Epoch] = []
    for item in raw:
        try:
            if isinstance(item, Epoch):
                epochs.append(item)
            elif isinstance(item, dict):
                epochs.append(Epoch(**item))
            else:
                start_time, bps = item
                epochs.append(Epoch(start_time=start_time, bps=bps))
        except (ValidationError, TypeError, ValueError) as e:
            raise EpochBpsInvalid(f"Invalid epoch {item!r}: {e}") from e
    return epochs


class VestingSchedule:
    """
    Immutable расписание vesting.

    Порядок эпох не обязан быть возрастающим для корректности суммы,
    но невозрастающий порядок логируется как предупреждение конфигурации.
    """

    def __init__(self, epochs: Sequence[Epoch]):
        """
        Args:
            epochs: эпохи (ожидается по возрастанию start_time)

        Raises:
            NoEpochs: пустой список
            EpochBpsInvalid: сумма bps != 10000
        """
        if not epochs:
            raise NoEpochs("Vesting schedule requires at least one epoch")

        total_bps = sum(e.bps for e in epochs)
        if total_bps != BPS_DENOMINATOR:
            raise EpochBpsInvalid(
                f"Epochs must sum to 100% ({BPS_DENOMINATOR} bps), got {total_bps}"
            )

        starts = [e.start_time for e in epochs]
        if starts != sorted(starts):
            logger.warning("Vesting epochs are not in ascending start_time order: %s", starts)

        self._epochs: tuple[Epoch, ...] = tuple(epochs)

    @property
    def epochs(self) -> tuple[Epoch, ...]:
        return self._epochs

    def __len__(self) -> int:
        return len(self._epochs)

    def vested_bps(self, now: int) -> int:
        """Накопленный bps на момент now."""
        return sum(e.bps for e in self._epochs if e.has_started(now))

    def vested_amount(self, locked_total: int, now: int) -> int:
        """
        Освобождённая часть locked_total на момент now.

        Усечение вниз (в пользу продавца); при 100% возвращает locked_total ровно.
        """
        return apply_bps(locked_total, self.vested_bps(now))

    def next_unlock_time(self, now: int) -> int | None:
        """Старт ближайшей ещё не наступившей эпохи (None, если все наступили)."""
        pending = [e.start_time for e in self._epochs if not e.has_started(now)]
        return min(pending) if pending else None

    def is_fully_vested(self, now: int) -> bool:
        return self.vested_bps(now) == BPS_DENOMINATOR
