"""
Versioning — эволюция схемы состояния без порчи сохранённых данных

Upgrade-in-place моделируется явно:
- schema version tag (_initialized_version) хранится в состоянии компонента
- STATE_LAYOUT: версия → упорядоченный кортеж полей; каждая следующая версия
  обязана начинаться с полей предыдущей (append-only, без удаления и
  перестановок). Проверяется при определении класса
- reinitializer(N): одноразовый шаг миграции к версии N, повторный вызов
  → AlreadyInitialized

Экспорт/импорт состояния идёт строго по layout текущей версии и
валидируется JSON Schema контрактом компонента (если задан).
"""

import functools
import logging
from typing import Any, Callable, ClassVar, TypeVar

from tokensale.core.contracts import validate_state
from tokensale.core.errors import AlreadyInitialized, SchemaLayoutError
from tokensale.ledger.ledger import LedgerComponent

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


# =============================================================================
# LAYOUT CHECKS
# =============================================================================


def check_append_only(layout: dict[int, tuple[str, ...]]) -> None:
    """
    Проверка append-only правила для layout состояния.

    Raises:
        SchemaLayoutError: версии не идут подряд с 1, есть дубликаты полей,
            или версия удаляет/переставляет поля предыдущей
    """
    if not layout:
        raise SchemaLayoutError("State layout must define at least version 1")

    versions = sorted(layout)
    if versions != list(range(1, len(versions) + 1)):
        raise SchemaLayoutError(f"Layout versions must be consecutive from 1: {versions}")

    previous: tuple[str, ...] = ()
    for version in versions:
        fields = layout[version]
        if len(set(fields)) != len(fields):
            raise SchemaLayoutError(f"Duplicate fields in layout v{version}: {fields}")
        if fields[: len(previous)] != previous:
            raise SchemaLayoutError(
                f"Layout v{version} is not an append-only extension of v{version - 1}: "
                f"{previous} -> {fields}"
            )
        previous = fields


# =============================================================================
# REINITIALIZER
# =============================================================================


def reinitializer(version: int) -> Callable[[F], F]:
    """
    Одноразовый инициализатор версии схемы.

    Выполняется атомарно; версия фиксируется только после успешного
    завершения тела метода.
    """

    def decorator(method: F) -> F:
        @functools.wraps(method)
        def wrapper(self: "Upgradeable", *args: Any, **kwargs: Any) -> Any:
            with self.ledger.transaction(method.__name__):
                if self._initialized_version >= version:
                    raise AlreadyInitialized(
                        f"{type(self).__name__} already initialized to "
                        f"v{self._initialized_version}, cannot run v{version} initializer"
                    )
                if version not in self.STATE_LAYOUT:
                    raise SchemaLayoutError(
                        f"{type(self).__name__} has no state layout for v{version}"
                    )
                result = method(self, *args, **kwargs)
                previous = self._initialized_version
                self._initialized_version = version
                logger.info(
                    "%s %s initialized: v%d -> v%d",
                    type(self).__name__, self.address, previous, version,
                )
                return result

        return wrapper  # type: ignore[return-value]

    return decorator


# =============================================================================
# UPGRADEABLE COMPONENT
# =============================================================================


class Upgradeable(LedgerComponent):
    """
    Компонент с версионированной схемой состояния.

    Подклассы задают:
    - STATE_LAYOUT: append-only layout персистентных полей по версиям
    - STATE_CONTRACT: имя JSON Schema контракта (без суффикса версии) или None
    - _dump_state() / _apply_state(): конверсия полей layout ↔ атрибуты
    """

    STATE_LAYOUT: ClassVar[dict[int, tuple[str, ...]]] = {1: ()}
    STATE_CONTRACT: ClassVar[str | None] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        check_append_only(cls.STATE_LAYOUT)

    def __init__(self, *args: Any, **kwargs: Any):
        self._initialized_version = 0
        super().__init__(*args, **kwargs)

    @classmethod
    def latest_version(cls) -> int:
        return max(cls.STATE_LAYOUT)

    def version(self) -> int:
        """Текущая версия схемы состояния."""
        return self._initialized_version

    def snapshot(self) -> dict[str, Any]:
        state = super().snapshot()
        state["_initialized_version"] = self._initialized_version
        return state

    # -------------------------------------------------------------------------
    # Persisted state
    # -------------------------------------------------------------------------

    def export_state(self) -> dict[str, Any]:
        """
        Экспорт персистентного состояния по layout текущей версии.

        Returns:
            JSON-совместимый dict: schema_version + поля в порядке layout
        """
        version = self._initialized_version
        if version not in self.STATE_LAYOUT:
            raise SchemaLayoutError(f"{type(self).__name__} is not initialized")

        dumped = self._dump_state()
        state: dict[str, Any] = {"schema_version": version}
        for name in self.STATE_LAYOUT[version]:
            state[name] = dumped[name]

        if self.STATE_CONTRACT is not None:
            validate_state(self.STATE_CONTRACT, state)
        return state

    def load_state(self, state: dict[str, Any]) -> None:
        """
        Импорт ранее экспортированного состояния (той же или более ранней версии).

        Raises:
            SchemaLayoutError: неизвестная версия или поля не совпадают с layout
            jsonschema.ValidationError: данные не соответствуют контракту
        """
        version = state.get("schema_version")
        if version not in self.STATE_LAYOUT:
            raise SchemaLayoutError(
                f"Unknown schema_version {version!r} for {type(self).__name__}"
            )

        expected = set(self.STATE_LAYOUT[version])
        actual = set(state) - {"schema_version"}
        if actual != expected:
            raise SchemaLayoutError(
                f"State fields do not match layout v{version}: "
                f"missing={sorted(expected - actual)}, unexpected={sorted(actual - expected)}"
            )

        if self.STATE_CONTRACT is not None:
            validate_state(self.STATE_CONTRACT, state)

        with self.ledger.transaction("load_state"):
            self._apply_state({name: state[name] for name in self.STATE_LAYOUT[version]})
            self._initialized_version = version

        logger.info("%s %s loaded state v%d", type(self).__name__, self.address, version)

    def _dump_state(self) -> dict[str, Any]:
        return {}

    def _apply_state(self, fields: dict[str, Any]) -> None:
        pass
