"""Sale State Machine — фазы конфигурации и открытия продажи.

Переходы:
- UNCONFIGURED → ROUNDS_SET | SCHEDULE_SET (раунды и расписание в любом порядке)
- ROUNDS_SET | SCHEDULE_SET → FULLY_CONFIGURED
- FULLY_CONFIGURED → OPEN (необратимо)

Повторная конфигурация запрещена (write-once), после OPEN конфигурация закрыта.
"""

from dataclasses import dataclass

from tokensale.core.domain.sale_state import SaleAction, SalePhase


@dataclass(frozen=True)
class SaleTransitionResult:
    """Результат оценки перехода фазы."""

    allowed: bool
    new_phase: SalePhase
    previous_phase: SalePhase

    # Диагностика
    transition_occurred: bool
    transition_reason: str
    block_reason: str

    details: str


class SaleStateMachine:
    """State machine фаз продажи.

    Stateless: фаза вычисляется из флагов конфигурации движка, а машина
    только решает, допустимо ли действие и к какой фазе оно приводит.
    """

    @staticmethod
    def phase_of(rounds_configured: bool, schedule_configured: bool, opened: bool) -> SalePhase:
        """Фаза по флагам состояния движка."""
        if opened:
            return SalePhase.OPEN
        if rounds_configured and schedule_configured:
            return SalePhase.FULLY_CONFIGURED
        if rounds_configured:
            return SalePhase.ROUNDS_SET
        if schedule_configured:
            return SalePhase.SCHEDULE_SET
        return SalePhase.UNCONFIGURED

    def evaluate_transition(self, current_phase: SalePhase, action: SaleAction) -> SaleTransitionResult:
        """Оценка действия action в фазе current_phase.

        Args:
            current_phase: текущая фаза
            action: административное действие

        Returns:
            SaleTransitionResult с решением и новой фазой
        """
        # 1. После открытия конфигурация и повторное открытие запрещены
        if current_phase == SalePhase.OPEN:
            return self._blocked(current_phase, "sale_already_open", f"{action.value} after OPEN")

        # 2. Открытие продажи
        if action == SaleAction.OPEN_SALE:
            if current_phase != SalePhase.FULLY_CONFIGURED:
                return self._blocked(
                    current_phase, "not_configured",
                    f"Rounds/epochs not set, phase={current_phase.value}",
                )
            return self._transition(current_phase, SalePhase.OPEN, "sale_opened")

        # 3. Раунды
        if action == SaleAction.CONFIGURE_ROUNDS:
            if current_phase in (SalePhase.ROUNDS_SET, SalePhase.FULLY_CONFIGURED):
                return self._blocked(current_phase, "rounds_already_configured", "Rounds are write-once")
            target = (
                SalePhase.FULLY_CONFIGURED
                if current_phase == SalePhase.SCHEDULE_SET
                else SalePhase.ROUNDS_SET
            )
            return self._transition(current_phase, target, "rounds_configured")

        # 4. Расписание
        if current_phase in (SalePhase.SCHEDULE_SET, SalePhase.FULLY_CONFIGURED):
            return self._blocked(current_phase, "schedule_already_configured", "Schedule is write-once")
        target = (
            SalePhase.FULLY_CONFIGURED
            if current_phase == SalePhase.ROUNDS_SET
            else SalePhase.SCHEDULE_SET
        )
        return self._transition(current_phase, target, "schedule_configured")

    def _transition(self, current: SalePhase, target: SalePhase, reason: str) -> SaleTransitionResult:
        return SaleTransitionResult(
            allowed=True,
            new_phase=target,
            previous_phase=current,
            transition_occurred=True,
            transition_reason=reason,
            block_reason="",
            details=f"{current.value} → {target.value}",
        )

    def _blocked(self, current: SalePhase, block_reason: str, details: str) -> SaleTransitionResult:
        return SaleTransitionResult(
            allowed=False,
            new_phase=current,
            previous_phase=current,
            transition_occurred=False,
            transition_reason="blocked",
            block_reason=block_reason,
            details=details,
        )
