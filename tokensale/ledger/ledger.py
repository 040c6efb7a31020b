"""
Ledger — единый сериализованный контекст исполнения

Модель исполнения:
- Каждая мутирующая операция (configure, buy, claim, unlock, mint) выполняется
  целиком под блокировкой ledger, без чередования с другими мутациями
- Перед операцией ledger снимает снапшоты всех зарегистрированных компонентов;
  любое исключение восстанавливает их все (полный откат)
- Вложенные вызовы компонентов присоединяются к внешней транзакции
- Операции упорядочены строго по порядку подачи

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Нет частичных эффектов: либо операция применена целиком, либо не применена
2. Время ledger монотонно (advance_to назад → ValueError)
"""

import copy
import functools
import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from tokensale.ledger.context import CallContext

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


# =============================================================================
# LEDGER
# =============================================================================


class Ledger:
    """
    Сериализованный ledger с часами и атомарными транзакциями.

    Часы управляются явно (advance_to / increase_time), что делает
    vesting детерминированным и воспроизводимым.
    """

    def __init__(self, start_time: int = 0):
        """
        Args:
            start_time: начальное время ledger (unix, секунды)
        """
        if start_time < 0:
            raise ValueError(f"start_time cannot be negative: {start_time}")

        self._now = start_time
        self._components: list["LedgerComponent"] = []
        self._lock = threading.RLock()
        self._depth = 0

    # -------------------------------------------------------------------------
    # Часы
    # -------------------------------------------------------------------------

    @property
    def now(self) -> int:
        return self._now

    def advance_to(self, timestamp: int) -> None:
        """Перевод часов вперёд до timestamp."""
        with self._lock:
            if timestamp < self._now:
                raise ValueError(
                    f"Ledger time cannot move backwards: {timestamp} < {self._now}"
                )
            self._now = timestamp

    def increase_time(self, seconds: int) -> None:
        if seconds < 0:
            raise ValueError(f"seconds cannot be negative: {seconds}")
        self.advance_to(self._now + seconds)

    def context(self, caller: str) -> CallContext:
        """Контекст вызова от имени caller в текущее время ledger."""
        return CallContext(caller=caller, timestamp=self._now)

    # -------------------------------------------------------------------------
    # Компоненты и транзакции
    # -------------------------------------------------------------------------

    def register(self, component: "LedgerComponent") -> None:
        with self._lock:
            if any(c is component for c in self._components):
                return
            if any(c.address == component.address for c in self._components):
                raise ValueError(f"Address already registered: {component.address}")
            self._components.append(component)

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self, operation: str = "operation") -> Iterator[None]:
        """
        Атомарная транзакция.

        Внешняя транзакция снимает снапшоты всех компонентов и восстанавливает
        их при любом исключении. Вложенные транзакции только увеличивают
        глубину, откат выполняет внешняя.
        """
        with self._lock:
            if self._depth > 0:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            snapshots = [(c, c.snapshot()) for c in self._components]
            self._depth = 1
            try:
                yield
            except BaseException as exc:
                for component, state in snapshots:
                    component.restore(state)
                logger.warning(
                    "Rolled back %s: %s: %s", operation, type(exc).__name__, exc
                )
                raise
            finally:
                self._depth = 0


# =============================================================================
# COMPONENT BASE
# =============================================================================


class LedgerComponent:
    """
    Базовый класс компонента, состояние которого откатывается ledger.

    STATE_FIELDS — имена атрибутов с изменяемым состоянием. Значения внутри
    контейнеров должны быть immutable (int, str, frozen модели), поэтому
    снапшоту достаточно поверхностной копии контейнера.
    """

    STATE_FIELDS: tuple[str, ...] = ()

    def __init__(self, ledger: Ledger, address: str):
        if not address:
            raise ValueError("Component address must be non-empty")
        self.ledger = ledger
        self.address = address
        ledger.register(self)

    def snapshot(self) -> dict[str, Any]:
        return {name: copy.copy(getattr(self, name)) for name in self.STATE_FIELDS}

    def restore(self, state: dict[str, Any]) -> None:
        for name, value in state.items():
            setattr(self, name, value)


def atomic(method: F) -> F:
    """Выполнение метода компонента внутри транзакции ledger."""

    @functools.wraps(method)
    def wrapper(self: LedgerComponent, *args: Any, **kwargs: Any) -> Any:
        with self.ledger.transaction(method.__name__):
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]
