"""Тесты для Sale State Machine.

Coverage:
- Конфигурация раундов и расписания в любом порядке
- Write-once конфигурация
- Открытие только после полной конфигурации
- Необратимость OPEN
"""

import pytest

from tokensale.core.domain import SaleAction, SalePhase
from tokensale.sale import SaleStateMachine


@pytest.fixture
def sm():
    return SaleStateMachine()


class TestPhaseOf:
    """Тесты вычисления фазы по флагам."""

    @pytest.mark.parametrize(
        "rounds,schedule,opened,expected",
        [
            (False, False, False, SalePhase.UNCONFIGURED),
            (True, False, False, SalePhase.ROUNDS_SET),
            (False, True, False, SalePhase.SCHEDULE_SET),
            (True, True, False, SalePhase.FULLY_CONFIGURED),
            (True, True, True, SalePhase.OPEN),
        ],
    )
    def test_phase(self, rounds, schedule, opened, expected):
        assert SaleStateMachine.phase_of(rounds, schedule, opened) == expected


class TestTransitions:
    """Тесты переходов."""

    def test_rounds_first(self, sm):
        result = sm.evaluate_transition(SalePhase.UNCONFIGURED, SaleAction.CONFIGURE_ROUNDS)

        assert result.allowed
        assert result.transition_occurred
        assert result.new_phase == SalePhase.ROUNDS_SET
        assert result.transition_reason == "rounds_configured"

    def test_schedule_first(self, sm):
        result = sm.evaluate_transition(SalePhase.UNCONFIGURED, SaleAction.CONFIGURE_SCHEDULE)
        assert result.new_phase == SalePhase.SCHEDULE_SET

    def test_both_in_either_order(self, sm):
        a = sm.evaluate_transition(SalePhase.ROUNDS_SET, SaleAction.CONFIGURE_SCHEDULE)
        b = sm.evaluate_transition(SalePhase.SCHEDULE_SET, SaleAction.CONFIGURE_ROUNDS)

        assert a.new_phase == SalePhase.FULLY_CONFIGURED
        assert b.new_phase == SalePhase.FULLY_CONFIGURED

    def test_open_after_full_configuration(self, sm):
        result = sm.evaluate_transition(SalePhase.FULLY_CONFIGURED, SaleAction.OPEN_SALE)

        assert result.allowed
        assert result.new_phase == SalePhase.OPEN
        assert result.details == "FULLY_CONFIGURED → OPEN"


class TestBlockedTransitions:
    """Тесты запрещённых переходов."""

    @pytest.mark.parametrize(
        "phase", [SalePhase.UNCONFIGURED, SalePhase.ROUNDS_SET, SalePhase.SCHEDULE_SET]
    )
    def test_open_requires_full_configuration(self, sm, phase):
        result = sm.evaluate_transition(phase, SaleAction.OPEN_SALE)

        assert not result.allowed
        assert not result.transition_occurred
        assert result.new_phase == phase
        assert result.block_reason == "not_configured"

    def test_rounds_write_once(self, sm):
        result = sm.evaluate_transition(SalePhase.FULLY_CONFIGURED, SaleAction.CONFIGURE_ROUNDS)
        assert result.block_reason == "rounds_already_configured"

    def test_schedule_write_once(self, sm):
        result = sm.evaluate_transition(SalePhase.SCHEDULE_SET, SaleAction.CONFIGURE_SCHEDULE)
        assert result.block_reason == "schedule_already_configured"

    @pytest.mark.parametrize("action", list(SaleAction))
    def test_open_is_terminal(self, sm, action):
        result = sm.evaluate_transition(SalePhase.OPEN, action)

        assert not result.allowed
        assert result.new_phase == SalePhase.OPEN
        assert result.block_reason == "sale_already_open"
