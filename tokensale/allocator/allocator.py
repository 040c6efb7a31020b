"""
Allocator — одноразовые выплаты казначейских категорий

Пять фиксированных категорий (ECOSYSTEM, COMMUNITY, TEAM, RESERVE,
PARTNERSHIP). Администратор задаёт кошелёк и сумму, затем вызывает unlock,
который переводит сумму с баланса аллокатора на кошелёк категории.

Политика повторной выплаты: после успешного unlock сумма категории
израсходована (amount = 0, disbursed = True). Повторный unlock падает с
NoAllocation до явного повторного set_category.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from tokensale.asset.capped_asset import CappedAsset
from tokensale.asset.token import TransferableAsset
from tokensale.core.domain.allocation import Category, CategoryAllocation
from tokensale.core.domain.units import BPS_DENOMINATOR, apply_bps, is_unset_address, validate_amount
from tokensale.core.errors import (
    AssetError,
    AssetTransferFailed,
    InvalidInput,
    NoAllocation,
    NotAdmin,
    NoWallet,
)
from tokensale.ledger.context import CallContext
from tokensale.ledger.ledger import Ledger, atomic
from tokensale.upgrade.versioning import Upgradeable, reinitializer

logger = logging.getLogger(__name__)


# =============================================================================
# ALLOCATION PLAN
# =============================================================================


@dataclass(frozen=True)
class AllocationPlan:
    """
    Доли supply по назначениям (bps).

    Сумма всех долей (включая публичную продажу) обязана быть 10000.
    """

    public_sale_bps: int = 1000
    ecosystem_bps: int = 3000
    community_bps: int = 2000
    team_bps: int = 1500
    reserve_bps: int = 2000
    partnership_bps: int = 500

    def __post_init__(self) -> None:
        shares = (
            self.public_sale_bps,
            self.ecosystem_bps,
            self.community_bps,
            self.team_bps,
            self.reserve_bps,
            self.partnership_bps,
        )
        if any(s < 0 for s in shares):
            raise ValueError(f"Allocation bps cannot be negative: {shares}")
        if sum(shares) != BPS_DENOMINATOR:
            raise ValueError(f"Allocation bps must sum to {BPS_DENOMINATOR}, got {sum(shares)}")

    def category_bps(self, category: Category) -> int:
        return {
            Category.ECOSYSTEM: self.ecosystem_bps,
            Category.COMMUNITY: self.community_bps,
            Category.TEAM: self.team_bps,
            Category.RESERVE: self.reserve_bps,
            Category.PARTNERSHIP: self.partnership_bps,
        }[category]

    def public_sale_amount(self, total: int) -> int:
        return apply_bps(total, self.public_sale_bps)

    def category_amounts(self, total: int) -> dict[Category, int]:
        """Суммы категорий от total (каждая усечена вниз)."""
        return {c: apply_bps(total, self.category_bps(c)) for c in Category}

    def treasury_total(self, total: int) -> int:
        """Сколько нужно выпустить на аллокатор под все категории."""
        return sum(self.category_amounts(total).values())


# =============================================================================
# ALLOCATOR
# =============================================================================


class Allocator(Upgradeable):
    """Казначейский аллокатор с одноразовыми выплатами по категориям."""

    STATE_FIELDS = ("admin", "_categories")
    STATE_LAYOUT = {
        1: ("admin", "asset", "categories"),
    }
    STATE_CONTRACT = "allocator"

    def __init__(self, ledger: Ledger, address: str, admin: str, asset: TransferableAsset):
        self.admin = ""
        self.asset = asset
        self._categories: dict[Category, CategoryAllocation] = {
            c: CategoryAllocation(category=c) for c in Category
        }
        super().__init__(ledger, address)
        self.initialize(admin)

    @reinitializer(1)
    def initialize(self, admin: str) -> None:
        if not admin:
            raise InvalidInput("Admin address must be non-empty")
        self.admin = admin

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def category(self, category: Category | int) -> CategoryAllocation:
        return self._categories[self._resolve(category)]

    def categories(self) -> list[CategoryAllocation]:
        return [self._categories[c] for c in Category]

    @property
    def pending_total(self) -> int:
        """Сумма ещё не выплаченных категорий."""
        return sum(a.amount for a in self._categories.values())

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------

    @atomic
    def set_category(
        self, ctx: CallContext, category: Category | int, wallet: str | None, amount: int
    ) -> None:
        """
        Перезапись кошелька и суммы категории; категория снова доступна для unlock.

        Нулевой адрес или None означают "кошелёк не задан".

        Raises:
            NotAdmin: вызывающий не admin
            InvalidInput: неизвестная категория или некорректная сумма
        """
        self._require_admin(ctx)
        resolved = self._resolve(category)
        try:
            validate_amount(amount)
        except ValueError as e:
            raise InvalidInput(str(e)) from e

        current = self._categories[resolved]
        self._categories[resolved] = current.model_copy(
            update={
                "wallet": None if is_unset_address(wallet) else wallet,
                "amount": amount,
                "disbursed": False,
            }
        )
        logger.info("Category %s set: wallet=%s amount=%d", resolved.name, wallet, amount)

    @atomic
    def unlock(self, ctx: CallContext, category: Category | int) -> int:
        """
        Выплата суммы категории на её кошелёк.

        Категория помечается израсходованной до внешнего перевода;
        отказ актива откатывает операцию целиком.

        Returns:
            Выплаченная сумма

        Raises:
            NotAdmin: вызывающий не admin
            NoWallet: кошелёк не задан
            NoAllocation: сумма нулевая (или уже выплачена)
            AssetTransferFailed: актив отклонил перевод
        """
        self._require_admin(ctx)
        resolved = self._resolve(category)
        current = self._categories[resolved]

        if current.wallet is None:
            raise NoWallet(f"Category {resolved.name} has no wallet")
        if current.amount == 0:
            raise NoAllocation(f"Category {resolved.name} has no allocation")

        amount = current.amount
        self._categories[resolved] = current.model_copy(
            update={
                "amount": 0,
                "disbursed": True,
                "disbursed_total": current.disbursed_total + amount,
            }
        )

        try:
            ok = self.asset.transfer(ctx.forward(self.address), current.wallet, amount)
        except AssetError as e:
            logger.warning("Unlock %s rejected by asset: %s", resolved.name, e)
            raise AssetTransferFailed(f"Token transfer failed for {resolved.name}") from e
        if not ok:
            logger.warning("Unlock %s rejected by asset", resolved.name)
            raise AssetTransferFailed(f"Token transfer failed for {resolved.name}")

        logger.info("Category %s unlocked: %d -> %s", resolved.name, amount, current.wallet)
        return amount

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_admin(self, ctx: CallContext) -> None:
        if ctx.caller != self.admin:
            raise NotAdmin(f"{ctx.caller} is not allocator admin")

    @staticmethod
    def _resolve(category: Category | int) -> Category:
        try:
            return Category(category)
        except ValueError as e:
            raise InvalidInput(f"Unknown category id: {category!r}") from e

    # -------------------------------------------------------------------------
    # Persisted state
    # -------------------------------------------------------------------------

    def _dump_state(self) -> dict[str, Any]:
        return {
            "admin": self.admin,
            "asset": self.asset.address,
            "categories": [
                {**a.model_dump(), "category": int(a.category)} for a in self.categories()
            ],
        }

    def _apply_state(self, fields: dict[str, Any]) -> None:
        if fields["asset"] != self.asset.address:
            raise InvalidInput(
                f"Persisted asset {fields['asset']} does not match {self.asset.address}"
            )
        categories = {c: CategoryAllocation(category=c) for c in Category}
        for item in fields["categories"]:
            allocation = CategoryAllocation(**item)
            categories[allocation.category] = allocation

        self.admin = fields["admin"]
        self._categories = categories


# =============================================================================
# SUPPLY DISTRIBUTION
# =============================================================================


@dataclass(frozen=True)
class SupplyDistribution:
    """Результат distribute_supply."""

    total: int
    public_sale_amount: int
    category_amounts: dict[Category, int]
    treasury_total: int


def distribute_supply(
    ctx: CallContext,
    token: CappedAsset,
    sale_address: str,
    allocator: Allocator,
    plan: AllocationPlan | None = None,
    wallets: Mapping[Category, str | None] | None = None,
    total: int | None = None,
) -> SupplyDistribution:
    """
    Начальное распределение supply по плану.

    Публичная доля выпускается на sale_address, сумма казначейских категорий
    на аллокатор; затем каждой категории задаются кошелёк и сумма. Категории
    без кошелька в wallets получают сумму без кошелька (unlock даст NoWallet).

    Выполняется одной транзакцией ledger: ошибка любого шага (NotAdmin,
    CapExceeded) откатывает всё распределение.

    Args:
        ctx: вызывающий должен быть admin и токена, и аллокатора
        total: база для долей (по умолчанию cap токена)
    """
    plan = plan or AllocationPlan()
    wallets = wallets or {}
    base = token.cap if total is None else total
    try:
        validate_amount(base)
    except ValueError as e:
        raise InvalidInput(str(e)) from e

    public_amount = plan.public_sale_amount(base)
    amounts = plan.category_amounts(base)
    treasury = plan.treasury_total(base)

    with allocator.ledger.transaction("distribute_supply"):
        token.mint(ctx, sale_address, public_amount)
        token.mint(ctx, allocator.address, treasury)
        for category in Category:
            allocator.set_category(ctx, category, wallets.get(category), amounts[category])

    logger.info(
        "Supply distributed from %d: public sale %d -> %s, treasury %d -> %s",
        base, public_amount, sale_address, treasury, allocator.address,
    )
    return SupplyDistribution(
        total=base,
        public_sale_amount=public_amount,
        category_amounts=amounts,
        treasury_total=treasury,
    )
