"""
Errors — таксономия ошибок движка продажи

Все ошибки прерывают операцию целиком: Ledger откатывает состояние всех
компонентов, частичных эффектов не остаётся.

Категории:
- ConfigurationError: ошибки конфигурации/входных данных, исправляются вызывающим
- AuthorizationError: вызов от неуполномоченного адреса, никогда не повторяется
- ResourceExhaustedError: исчерпание ресурса (раунды, cap)
- ExternalDependencyError: внешний актив отклонил перевод
- SaleStateError: ожидаемые состояния (нечего клеймить, нет кошелька и т.п.)
- UpgradeError: ошибки версионирования схемы состояния
- AssetError: ошибки самого value-токена (баланс, allowance)
- InvariantViolation: нарушен внутренний инвариант (баг, а не ошибка вызова)
"""


class TokenSaleError(Exception):
    """Базовая ошибка пакета."""


# =============================================================================
# CONFIGURATION
# =============================================================================


class ConfigurationError(TokenSaleError):
    """Некорректная конфигурация или входные данные."""


class InvalidInput(ConfigurationError):
    pass


class NoEpochs(ConfigurationError):
    pass


class EpochBpsInvalid(ConfigurationError):
    pass


class NotConfigured(ConfigurationError):
    pass


class ZeroAmount(ConfigurationError):
    pass


# =============================================================================
# AUTHORIZATION
# =============================================================================


class AuthorizationError(TokenSaleError):
    """Вызов от адреса без необходимых прав."""


class NotSaleManager(AuthorizationError):
    pass


class NotOwner(AuthorizationError):
    pass


class NotAdmin(AuthorizationError):
    pass


# =============================================================================
# RESOURCE EXHAUSTION
# =============================================================================


class ResourceExhaustedError(TokenSaleError):
    """Ресурс исчерпан. Система не выполняет автоматических повторов."""


class AllRoundsSoldOut(ResourceExhaustedError):
    pass


class CapExceeded(ResourceExhaustedError):
    pass


# =============================================================================
# EXTERNAL DEPENDENCY
# =============================================================================


class ExternalDependencyError(TokenSaleError):
    """
    Внешний актив отклонил перевод.

    Отдельная ветка иерархии, чтобы оператор мог отличить "сломался мой
    инвариант" от "платёжная шина отклонила вызов". Исходная ошибка актива
    (если была) доступна через __cause__.
    """


class PaymentTransferFailed(ExternalDependencyError):
    pass


class AssetTransferFailed(ExternalDependencyError):
    pass


# =============================================================================
# STATE
# =============================================================================


class SaleStateError(TokenSaleError):
    """Ожидаемое в нормальной работе состояние, операция не применима."""


class NoLocked(SaleStateError):
    pass


class NothingToClaim(SaleStateError):
    pass


class NoWallet(SaleStateError):
    pass


class NoAllocation(SaleStateError):
    pass


class SaleNotOpen(SaleStateError):
    pass


class AlreadyConfigured(SaleStateError):
    pass


class SalePaused(SaleStateError):
    pass


class ControllerAlreadySet(SaleStateError):
    pass


# =============================================================================
# UPGRADE
# =============================================================================


class UpgradeError(TokenSaleError):
    """Ошибки версионирования схемы состояния."""


class AlreadyInitialized(UpgradeError):
    pass


class SchemaLayoutError(UpgradeError):
    """Layout состояния нарушает append-only правило или не совпадает с версией."""


# =============================================================================
# ASSET
# =============================================================================


class AssetError(TokenSaleError):
    """Ошибка value-токена."""


class InsufficientBalance(AssetError):
    pass


class InsufficientAllowance(AssetError):
    pass


class InvariantViolation(TokenSaleError):
    """
    Нарушен внутренний инвариант.

    Никогда не должна возникать при корректной работе. Операция откатывается.
    """
