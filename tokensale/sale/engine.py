"""
SaleEngine — фазированная продажа с vesting-выдачей

Жизненный цикл:
1. configure_rounds / configure_claim_schedule (admin, write-once, любой порядок)
2. open_sale (admin, необратимо)
3. buy: платёж раскладывается по раундам, поступление фиксируется как
   locked_total идентичности покупателя; платёж уходит в treasury
4. claim: выдача накопленной по расписанию части locked_total

V2 (initialize_v2): operator и пауза buy/claim. Поля V2 дописываются в
конец layout, состояние V1 загружается с operator=None, paused=False.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. sold ≤ total_amount для каждого раунда
2. claimed_total ≤ locked_total для каждой идентичности
3. Любая ошибка откатывает операцию целиком (включая внешние переводы)
"""

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from pydantic import ValidationError

from tokensale.asset.token import TransferableAsset
from tokensale.core.domain.epoch import Epoch
from tokensale.core.domain.round import Round
from tokensale.core.domain.sale_state import SaleAction, SalePhase, SaleSnapshot
from tokensale.core.domain.units import (
    ASSET_DECIMALS,
    NO_IDENTITY,
    PAYMENT_DECIMALS,
    scale_factor,
    validate_amount,
)
from tokensale.core.errors import (
    AlreadyConfigured,
    AssetError,
    AssetTransferFailed,
    InvalidInput,
    NoLocked,
    NotAdmin,
    NotConfigured,
    NothingToClaim,
    NotOwner,
    PaymentTransferFailed,
    SaleNotOpen,
    SalePaused,
    UpgradeError,
    ZeroAmount,
)
from tokensale.ledger.context import CallContext
from tokensale.ledger.ledger import Ledger, atomic
from tokensale.registry.holder_registry import HolderRegistry
from tokensale.sale.rounds import RoundFill, advance_cursor, plan_fill
from tokensale.sale.state_machine import SaleStateMachine, SaleTransitionResult
from tokensale.upgrade.versioning import Upgradeable, reinitializer
from tokensale.vesting.schedule import VestingSchedule, build_epochs

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG / RESULTS
# =============================================================================


@dataclass(frozen=True)
class SaleConfig:
    """
    Конфигурация единиц движка.

    Цена раунда выражена в payment units (с точностью asset_decimals) за
    один целый токен продажи.
    """

    payment_decimals: int = PAYMENT_DECIMALS
    asset_decimals: int = ASSET_DECIMALS

    def __post_init__(self) -> None:
        scale_factor(self.payment_decimals, self.asset_decimals)


@dataclass(frozen=True)
class PurchaseResult:
    """Результат buy."""

    identity_id: int
    asset_amount: int
    payment_amount: int
    fills: tuple[RoundFill, ...]
    current_round_index: int


@dataclass(frozen=True)
class ClaimResult:
    """Результат claim."""

    identity_id: int
    amount: int
    claimed_total: int
    locked_total: int
    vested_bps: int


# Маппинг block_reason state machine → исключение
_BLOCK_ERRORS: dict[str, type[Exception]] = {
    "sale_already_open": AlreadyConfigured,
    "rounds_already_configured": AlreadyConfigured,
    "schedule_already_configured": AlreadyConfigured,
    "not_configured": NotConfigured,
}


# =============================================================================
# SALE ENGINE
# =============================================================================


class SaleEngine(Upgradeable):
    """Движок фазированной продажи (sale manager)."""

    STATE_FIELDS = (
        "admin",
        "treasury",
        "_rounds",
        "_cursor",
        "_schedule",
        "_opened",
        "_operator",
        "_paused",
    )
    STATE_LAYOUT = {
        1: (
            "admin",
            "treasury",
            "payment_asset",
            "sale_asset",
            "registry",
            "rounds",
            "current_round_index",
            "epochs",
            "opened",
        ),
        2: (
            "admin",
            "treasury",
            "payment_asset",
            "sale_asset",
            "registry",
            "rounds",
            "current_round_index",
            "epochs",
            "opened",
            "operator",
            "paused",
        ),
    }
    STATE_CONTRACT = "sale_engine"

    def __init__(
        self,
        ledger: Ledger,
        address: str,
        admin: str,
        treasury: str,
        payment_asset: TransferableAsset,
        sale_asset: TransferableAsset,
        registry: HolderRegistry,
        config: SaleConfig | None = None,
    ):
        """
        Args:
            ledger: общий ledger
            address: адрес движка (spender для transfer_from, держатель sale asset)
            admin: администратор
            treasury: получатель платежей
            payment_asset: платёжный актив (stablecoin)
            sale_asset: продаваемый актив
            registry: реестр идентичностей; движок должен быть его контроллером
            config: единицы (по умолчанию 6 / 18 decimals)
        """
        self.config = config or SaleConfig()
        self.payment_asset = payment_asset
        self.sale_asset = sale_asset
        self.registry = registry
        self._state_machine = SaleStateMachine()

        self.admin = ""
        self.treasury = ""
        self._rounds: tuple[Round, ...] = ()
        self._cursor = 0
        self._schedule: VestingSchedule | None = None
        self._opened = False
        self._operator: str | None = None
        self._paused = False

        super().__init__(ledger, address)
        self.initialize(admin, treasury)

    @reinitializer(1)
    def initialize(self, admin: str, treasury: str) -> None:
        if not admin or not treasury:
            raise InvalidInput("Admin and treasury addresses must be non-empty")
        self.admin = admin
        self.treasury = treasury

    @reinitializer(2)
    def initialize_v2(self, ctx: CallContext, operator: str) -> None:
        """
        Миграция V1 → V2: operator и пауза.

        Raises:
            NotAdmin: вызывающий не admin
            AlreadyInitialized: V2 уже инициализирован
        """
        self._require_admin(ctx)
        if not operator:
            raise InvalidInput("Operator address must be non-empty")
        self._operator = operator
        self._paused = False

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> SalePhase:
        return self._state_machine.phase_of(
            rounds_configured=bool(self._rounds),
            schedule_configured=self._schedule is not None,
            opened=self._opened,
        )

    @property
    def is_open(self) -> bool:
        return self._opened

    @property
    def operator(self) -> str | None:
        return self._operator

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def current_round_index(self) -> int:
        return self._cursor

    @property
    def schedule(self) -> VestingSchedule | None:
        return self._schedule

    def rounds(self) -> tuple[Round, ...]:
        return self._rounds

    def round_info(self, index: int) -> Round:
        """
        Раунд по индексу.

        Raises:
            InvalidInput: индекс вне диапазона
        """
        if not 0 <= index < len(self._rounds):
            raise InvalidInput(f"Round index out of range: {index}")
        return self._rounds[index]

    def current_round(self) -> Round | None:
        if not self._rounds:
            return None
        return self._rounds[self._cursor]

    @property
    def total_sold(self) -> int:
        return sum(r.sold for r in self._rounds)

    @property
    def remaining_supply(self) -> int:
        return sum(r.remaining for r in self._rounds)

    def identity_of(self, address: str) -> int:
        return self.registry.identity_of(address)

    def locked_total(self, identity_id: int) -> int:
        return self.registry.total_locked(identity_id)

    def claimed_total(self, identity_id: int) -> int:
        return self.registry.total_claimed(identity_id)

    def vested_bps(self, at: int | None = None) -> int:
        """Накопленный bps на момент at (по умолчанию текущее время ledger)."""
        if self._schedule is None:
            return 0
        return self._schedule.vested_bps(self.ledger.now if at is None else at)

    def claimable(self, identity_id: int, at: int | None = None) -> int:
        """Сколько identity_id может получить на момент at (без побочных эффектов)."""
        if self._schedule is None:
            return 0
        now = self.ledger.now if at is None else at
        locked = self.registry.total_locked(identity_id)
        vested = self._schedule.vested_amount(locked, now)
        return max(vested - self.registry.total_claimed(identity_id), 0)

    def snapshot_view(self) -> SaleSnapshot:
        """Read-модель текущего состояния продажи."""
        now = self.ledger.now
        return SaleSnapshot(
            schema_version=self.version(),
            ts=now,
            phase=self.phase,
            current_round_index=self._cursor,
            rounds=list(self._rounds),
            vested_bps=self.vested_bps(now),
            next_unlock_time=(
                self._schedule.next_unlock_time(now) if self._schedule is not None else None
            ),
            paused=self._paused,
        )

    # -------------------------------------------------------------------------
    # Admin: configuration
    # -------------------------------------------------------------------------

    @atomic
    def configure_rounds(
        self,
        ctx: CallContext,
        prices: Sequence[int],
        amounts: Sequence[int],
        expected_total: int,
    ) -> None:
        """
        Однократная установка раундов.

        Args:
            prices: цена каждого раунда (payment units × 10^asset_decimals за токен)
            amounts: объём каждого раунда (asset units)
            expected_total: контрольная сумма amounts

        Raises:
            NotAdmin: вызывающий не admin
            AlreadyConfigured: раунды уже заданы или продажа открыта
            InvalidInput: пустой вход, разные длины, цена 0, сумма не совпала
        """
        self._require_admin(ctx)
        transition = self._apply_action(SaleAction.CONFIGURE_ROUNDS)

        prices = list(prices)
        amounts = list(amounts)
        if not prices:
            raise InvalidInput("At least one round is required")
        if len(prices) != len(amounts):
            raise InvalidInput(
                f"Prices and amounts length mismatch: {len(prices)} != {len(amounts)}"
            )

        rounds: list[Round] = []
        for index, (price, amount) in enumerate(zip(prices, amounts)):
            try:
                validate_amount(price)
                validate_amount(amount)
                rounds.append(Round(price=price, total_amount=amount))
            except (ValueError, ValidationError) as e:
                raise InvalidInput(f"Invalid round {index}: price={price!r} amount={amount!r}") from e

        total = sum(amounts)
        if total != expected_total:
            raise InvalidInput(f"Round amounts sum to {total}, expected {expected_total}")

        self._rounds = tuple(rounds)
        self._cursor = advance_cursor(self._rounds, 0)
        logger.info(
            "Rounds configured: %d rounds, total=%d (%s)",
            len(rounds), total, transition.details,
        )

    @atomic
    def configure_claim_schedule(self, ctx: CallContext, epochs: Sequence[Epoch | dict | tuple[int, int]]) -> None:
        """
        Однократная установка расписания vesting.

        Raises:
            NotAdmin: вызывающий не admin
            AlreadyConfigured: расписание уже задано или продажа открыта
            NoEpochs: пустой список
            EpochBpsInvalid: сумма bps != 10000 или некорректная эпоха
        """
        self._require_admin(ctx)
        transition = self._apply_action(SaleAction.CONFIGURE_SCHEDULE)

        self._schedule = VestingSchedule(build_epochs(epochs))
        logger.info(
            "Claim schedule configured: %d epochs (%s)", len(self._schedule), transition.details
        )

    @atomic
    def open_sale(self, ctx: CallContext) -> None:
        """
        Открытие продажи (необратимо).

        Raises:
            NotAdmin: вызывающий не admin
            NotConfigured: раунды или расписание не заданы
            AlreadyConfigured: продажа уже открыта
        """
        self._require_admin(ctx)
        transition = self._apply_action(SaleAction.OPEN_SALE)
        self._opened = True
        logger.info("Sale opened at %d (%s)", self.ledger.now, transition.details)

    # -------------------------------------------------------------------------
    # Admin: pause (V2)
    # -------------------------------------------------------------------------

    @atomic
    def pause(self, ctx: CallContext) -> None:
        self._require_pauser(ctx)
        self._paused = True
        logger.warning("Sale paused by %s", ctx.caller)

    @atomic
    def unpause(self, ctx: CallContext) -> None:
        self._require_pauser(ctx)
        self._paused = False
        logger.info("Sale unpaused by %s", ctx.caller)

    # -------------------------------------------------------------------------
    # Buy / Claim
    # -------------------------------------------------------------------------

    @atomic
    def buy(self, ctx: CallContext, payment_amount: int) -> PurchaseResult:
        """
        Покупка на payment_amount payment units.

        Порядок эффектов: учёт раундов → списание платежа в treasury →
        идентичность покупателя → увеличение locked_total.

        Raises:
            SaleNotOpen: продажа не открыта
            SalePaused: продажа на паузе (V2)
            ZeroAmount: платёж 0 или конвертируется в 0 asset units
            AllRoundsSoldOut: нет ёмкости для полного исполнения
            PaymentTransferFailed: платёжный актив отклонил списание
        """
        self._require_open()
        self._require_not_paused()
        try:
            validate_amount(payment_amount)
        except ValueError as e:
            raise InvalidInput(str(e)) from e
        if payment_amount == 0:
            raise ZeroAmount("Payment amount must be positive")

        plan = plan_fill(
            self._rounds,
            self._cursor,
            payment_amount,
            self.config.payment_decimals,
            self.config.asset_decimals,
        )
        previous_cursor = self._cursor
        self._rounds = plan.rounds
        self._cursor = plan.cursor

        forwarded = ctx.forward(self.address)
        try:
            ok = self.payment_asset.transfer_from(forwarded, ctx.caller, self.treasury, payment_amount)
        except AssetError as e:
            raise PaymentTransferFailed(f"Payment transfer failed: {e}") from e
        if not ok:
            raise PaymentTransferFailed("Payment transfer failed")

        identity_id = self.registry.get_or_create(forwarded, ctx.caller)
        self.registry.increase_locked(forwarded, identity_id, plan.asset_amount)

        for fill in plan.fills:
            logger.debug(
                "Round %d fill: %d asset units for %d payment units",
                fill.round_index, fill.asset_amount, fill.payment_amount,
            )
        if plan.cursor != previous_cursor:
            logger.info("Round advanced: %d -> %d", previous_cursor, plan.cursor)
        logger.info(
            "Purchase: %s paid %d, locked %d to identity #%d across %d round(s)",
            ctx.caller, payment_amount, plan.asset_amount, identity_id, len(plan.fills),
        )
        return PurchaseResult(
            identity_id=identity_id,
            asset_amount=plan.asset_amount,
            payment_amount=payment_amount,
            fills=plan.fills,
            current_round_index=self._cursor,
        )

    @atomic
    def claim(self, ctx: CallContext, identity_id: int) -> ClaimResult:
        """
        Выдача освобождённой части locked_total владельцу identity_id.

        Raises:
            SalePaused: продажа на паузе (V2)
            NotOwner: вызывающий не владелец идентичности
            NoLocked: у идентичности нет locked_total
            NotConfigured: расписание не задано
            NothingToClaim: накопленное уже выдано
            AssetTransferFailed: актив продажи отклонил перевод
        """
        self._require_not_paused()

        owner = self.registry.owner_of(identity_id)
        if identity_id == NO_IDENTITY or owner is None or owner != ctx.caller:
            raise NotOwner(f"{ctx.caller} does not own identity #{identity_id}")

        locked = self.registry.total_locked(identity_id)
        if locked == 0:
            raise NoLocked(f"Identity #{identity_id} has no locked tokens")
        if self._schedule is None:
            raise NotConfigured("Claim schedule not set")

        # Время vesting берётся только из часов ledger, не из контекста вызова
        now = self.ledger.now
        bps = self._schedule.vested_bps(now)
        vested = self._schedule.vested_amount(locked, now)
        claimed = self.registry.total_claimed(identity_id)
        amount = vested - claimed
        if amount <= 0:
            raise NothingToClaim(f"Identity #{identity_id}: nothing to claim at vested {bps} bps")

        forwarded = ctx.forward(self.address)
        self.registry.record_claim(forwarded, identity_id, amount)

        try:
            ok = self.sale_asset.transfer(forwarded, ctx.caller, amount)
        except AssetError as e:
            raise AssetTransferFailed(f"Token transfer failed: {e}") from e
        if not ok:
            raise AssetTransferFailed("Token transfer failed")

        logger.info(
            "Claim: identity #%d received %d (vested %d bps, %d/%d claimed)",
            identity_id, amount, bps, claimed + amount, locked,
        )
        return ClaimResult(
            identity_id=identity_id,
            amount=amount,
            claimed_total=claimed + amount,
            locked_total=locked,
            vested_bps=bps,
        )

    # -------------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------------

    def _require_admin(self, ctx: CallContext) -> None:
        if ctx.caller != self.admin:
            raise NotAdmin(f"{ctx.caller} is not sale admin")

    def _require_pauser(self, ctx: CallContext) -> None:
        if self._initialized_version < 2:
            raise UpgradeError("Pause requires state v2 (call initialize_v2)")
        if ctx.caller not in (self.admin, self._operator):
            raise NotAdmin(f"{ctx.caller} is neither admin nor operator")

    def _require_open(self) -> None:
        if not self._opened:
            raise SaleNotOpen("Sale not open")

    def _require_not_paused(self) -> None:
        if self._paused:
            raise SalePaused("Sale is paused")

    def _apply_action(self, action: SaleAction) -> SaleTransitionResult:
        transition = self._state_machine.evaluate_transition(self.phase, action)
        if not transition.allowed:
            error = _BLOCK_ERRORS.get(transition.block_reason, AlreadyConfigured)
            logger.warning(
                "Blocked %s in phase %s: %s",
                action.value, transition.previous_phase.value, transition.block_reason,
            )
            raise error(f"{action.value} blocked: {transition.block_reason} ({transition.details})")
        return transition

    # -------------------------------------------------------------------------
    # Persisted state
    # -------------------------------------------------------------------------

    def _dump_state(self) -> dict[str, Any]:
        return {
            "admin": self.admin,
            "treasury": self.treasury,
            "payment_asset": self.payment_asset.address,
            "sale_asset": self.sale_asset.address,
            "registry": self.registry.address,
            "rounds": [r.model_dump() for r in self._rounds],
            "current_round_index": self._cursor,
            "epochs": (
                [e.model_dump() for e in self._schedule.epochs]
                if self._schedule is not None
                else []
            ),
            "opened": self._opened,
            "operator": self._operator,
            "paused": self._paused,
        }

    def _apply_state(self, fields: dict[str, Any]) -> None:
        for name, component in (
            ("payment_asset", self.payment_asset),
            ("sale_asset", self.sale_asset),
            ("registry", self.registry),
        ):
            if fields[name] != component.address:
                raise InvalidInput(
                    f"Persisted {name} {fields[name]} does not match {component.address}"
                )

        try:
            rounds = tuple(Round(**r) for r in fields["rounds"])
        except ValidationError as e:
            raise InvalidInput(f"Invalid persisted rounds: {e}") from e
        cursor = fields["current_round_index"]
        if rounds and cursor >= len(rounds):
            raise InvalidInput(f"Persisted round index {cursor} out of range")

        epochs = fields["epochs"]
        schedule = VestingSchedule(build_epochs(epochs)) if epochs else None

        self.admin = fields["admin"]
        self.treasury = fields["treasury"]
        self._rounds = rounds
        self._cursor = cursor
        self._schedule = schedule
        self._opened = fields["opened"]
        # Поля V2 отсутствуют в состоянии V1
        self._operator = fields.get("operator")
        self._paused = fields.get("paused", False)
