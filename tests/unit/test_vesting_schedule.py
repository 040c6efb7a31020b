"""Тесты VestingSchedule.

Coverage:
- Валидация эпох (пустой список, сумма bps)
- Накопленный bps и освобождённая сумма по времени
- Полное освобождение после последней эпохи
- next_unlock_time / is_fully_vested
"""

import logging

import pytest

from tokensale.core.domain import Epoch
from tokensale.core.errors import ConfigurationError, EpochBpsInvalid, NoEpochs
from tokensale.vesting import VestingSchedule, build_epochs

T0 = 1_000


@pytest.fixture
def schedule():
    return VestingSchedule(build_epochs([(T0 + 100, 3000), (T0 + 200, 3000), (T0 + 300, 4000)]))


class TestScheduleValidation:
    """Тесты валидации расписания."""

    def test_empty_rejected(self):
        with pytest.raises(NoEpochs):
            VestingSchedule([])

    def test_sum_below_full_rejected(self):
        with pytest.raises(EpochBpsInvalid, match="10000"):
            VestingSchedule(build_epochs([(T0, 5000), (T0 + 1, 4000)]))

    def test_sum_above_full_rejected(self):
        with pytest.raises(EpochBpsInvalid):
            VestingSchedule(build_epochs([(T0, 6000), (T0 + 1, 6000)]))

    def test_invalid_epoch_item_rejected(self):
        with pytest.raises(EpochBpsInvalid):
            build_epochs([(T0, 10_001)])

    def test_errors_are_configuration_errors(self):
        with pytest.raises(ConfigurationError):
            VestingSchedule([])

    def test_build_epochs_accepts_mixed_input(self):
        epochs = build_epochs([
            Epoch(start_time=1, bps=1000),
            {"start_time": 2, "bps": 2000},
            (3, 7000),
        ])
        assert [e.bps for e in epochs] == [1000, 2000, 7000]

    def test_non_ascending_order_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="tokensale.vesting.schedule"):
            schedule = VestingSchedule(build_epochs([(T0 + 200, 5000), (T0 + 100, 5000)]))

        assert "not in ascending" in caplog.text
        assert schedule.vested_bps(T0 + 150) == 5000


class TestVestedAmount:
    """Тесты накопленного освобождения."""

    def test_before_first_epoch(self, schedule):
        assert schedule.vested_bps(T0) == 0
        assert schedule.vested_amount(5 * 10**17, T0 + 99) == 0

    def test_cumulative_by_epoch(self, schedule):
        locked = 5 * 10**17
        assert schedule.vested_amount(locked, T0 + 100) == 15 * 10**16
        assert schedule.vested_amount(locked, T0 + 200) == 30 * 10**16
        assert schedule.vested_amount(locked, T0 + 300) == locked

    def test_monotonic_in_time(self, schedule):
        values = [schedule.vested_bps(t) for t in range(T0, T0 + 400, 25)]
        assert values == sorted(values)

    def test_fully_vested_returns_exact_locked(self):
        """После последней эпохи освобождается ровно locked_total, без потерь на округлении."""
        schedule = VestingSchedule(build_epochs([(10, 3333), (20, 3333), (30, 3334)]))
        for locked in (1, 7, 10**18 + 1):
            assert schedule.vested_amount(locked, 30) == locked

    def test_next_unlock_time(self, schedule):
        assert schedule.next_unlock_time(T0) == T0 + 100
        assert schedule.next_unlock_time(T0 + 100) == T0 + 200
        assert schedule.next_unlock_time(T0 + 300) is None

    def test_is_fully_vested(self, schedule):
        assert not schedule.is_fully_vested(T0 + 299)
        assert schedule.is_fully_vested(T0 + 300)

    def test_len_and_epochs(self, schedule):
        assert len(schedule) == 3
        assert schedule.epochs[0] == Epoch(start_time=T0 + 100, bps=3000)
