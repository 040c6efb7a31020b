"""
HolderRegistry — реестр идентичностей держателей

- Не более одной записи на адрес владельца, id с 1 (0 = нет идентичности)
- Реестр — единственный, кто мутирует записи
- Мутирующие entry points доступны только авторизованному контроллеру
  (движку продажи). Контроллер задаётся один раз административным
  set_controller и проверяется в начале каждой мутации
"""

import logging
from typing import Any

from tokensale.core.domain.identity import IdentityRecord
from tokensale.core.domain.units import NO_IDENTITY, validate_amount
from tokensale.core.errors import (
    ControllerAlreadySet,
    InvalidInput,
    InvariantViolation,
    NotAdmin,
    NotSaleManager,
)
from tokensale.ledger.context import CallContext
from tokensale.ledger.ledger import Ledger, atomic
from tokensale.upgrade.versioning import Upgradeable, reinitializer

logger = logging.getLogger(__name__)


class HolderRegistry(Upgradeable):
    """Реестр IdentityRecord с авторизованным контроллером."""

    STATE_FIELDS = ("admin", "_controller", "_next_id", "_records", "_by_owner")
    STATE_LAYOUT = {
        1: ("admin", "controller", "next_id", "records"),
    }
    STATE_CONTRACT = "holder_registry"

    def __init__(self, ledger: Ledger, address: str, admin: str):
        self.admin = ""
        self._controller: str | None = None
        self._next_id = 1
        self._records: dict[int, IdentityRecord] = {}
        self._by_owner: dict[str, int] = {}
        super().__init__(ledger, address)
        self.initialize(admin)

    @reinitializer(1)
    def initialize(self, admin: str) -> None:
        if not admin:
            raise InvalidInput("Admin address must be non-empty")
        self.admin = admin

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------

    @atomic
    def set_controller(self, ctx: CallContext, controller: str) -> None:
        """
        Привязка авторизованного контроллера (однократно).

        Raises:
            NotAdmin: вызывающий не admin
            ControllerAlreadySet: контроллер уже задан
        """
        if ctx.caller != self.admin:
            raise NotAdmin(f"{ctx.caller} is not registry admin")
        if not controller:
            raise InvalidInput("Controller address must be non-empty")
        if self._controller is not None:
            raise ControllerAlreadySet(f"Controller already set to {self._controller}")

        self._controller = controller
        logger.info("Registry %s controller set to %s", self.address, controller)

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    @property
    def controller(self) -> str | None:
        return self._controller

    @property
    def identity_count(self) -> int:
        return len(self._records)

    def identity_of(self, address: str) -> int:
        """id записи владельца address или 0."""
        return self._by_owner.get(address, NO_IDENTITY)

    def record(self, identity_id: int) -> IdentityRecord | None:
        return self._records.get(identity_id)

    def owner_of(self, identity_id: int) -> str | None:
        rec = self._records.get(identity_id)
        return rec.owner if rec is not None else None

    def total_locked(self, identity_id: int) -> int:
        rec = self._records.get(identity_id)
        return rec.locked_total if rec is not None else 0

    def total_claimed(self, identity_id: int) -> int:
        rec = self._records.get(identity_id)
        return rec.claimed_total if rec is not None else 0

    # -------------------------------------------------------------------------
    # Controller-only mutations
    # -------------------------------------------------------------------------

    @atomic
    def get_or_create(self, ctx: CallContext, owner: str) -> int:
        """
        id существующей записи owner или новой записи.

        Raises:
            NotSaleManager: вызывающий не контроллер
        """
        self._require_controller(ctx)
        if not owner:
            raise InvalidInput("Owner address must be non-empty")

        existing = self._by_owner.get(owner)
        if existing is not None:
            return existing

        identity_id = self._next_id
        self._next_id += 1
        self._records[identity_id] = IdentityRecord(id=identity_id, owner=owner)
        self._by_owner[owner] = identity_id
        logger.info("Identity #%d created for %s", identity_id, owner)
        return identity_id

    @atomic
    def increase_locked(self, ctx: CallContext, identity_id: int, amount: int) -> None:
        """
        Увеличение locked_total.

        Raises:
            NotSaleManager: вызывающий не контроллер
            InvalidInput: неизвестный id или некорректная сумма
        """
        self._require_controller(ctx)
        rec = self._require_record(identity_id)
        self._check_amount(amount)

        self._records[identity_id] = rec.model_copy(
            update={"locked_total": rec.locked_total + amount}
        )

    @atomic
    def record_claim(self, ctx: CallContext, identity_id: int, amount: int) -> None:
        """
        Увеличение claimed_total.

        Raises:
            NotSaleManager: вызывающий не контроллер
            InvariantViolation: claimed_total превысил бы locked_total
        """
        self._require_controller(ctx)
        rec = self._require_record(identity_id)
        self._check_amount(amount)

        claimed = rec.claimed_total + amount
        if claimed > rec.locked_total:
            raise InvariantViolation(
                f"Identity #{identity_id}: claimed {claimed} would exceed locked {rec.locked_total}"
            )
        self._records[identity_id] = rec.model_copy(update={"claimed_total": claimed})

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_controller(self, ctx: CallContext) -> None:
        if self._controller is None or ctx.caller != self._controller:
            raise NotSaleManager(f"{ctx.caller} is not the sale manager")

    def _require_record(self, identity_id: int) -> IdentityRecord:
        rec = self._records.get(identity_id)
        if rec is None:
            raise InvalidInput(f"Unknown identity #{identity_id}")
        return rec

    @staticmethod
    def _check_amount(amount: int) -> None:
        try:
            validate_amount(amount)
        except ValueError as e:
            raise InvalidInput(str(e)) from e

    # -------------------------------------------------------------------------
    # Persisted state
    # -------------------------------------------------------------------------

    def _dump_state(self) -> dict[str, Any]:
        return {
            "admin": self.admin,
            "controller": self._controller,
            "next_id": self._next_id,
            "records": [rec.model_dump() for rec in self._records.values()],
        }

    def _apply_state(self, fields: dict[str, Any]) -> None:
        records = [IdentityRecord(**item) for item in fields["records"]]
        by_owner = {rec.owner: rec.id for rec in records}
        if len(by_owner) != len(records):
            raise InvalidInput("Persisted registry has more than one identity per owner")
        if any(rec.id >= fields["next_id"] for rec in records):
            raise InvalidInput("Persisted next_id collides with existing identity ids")

        self.admin = fields["admin"]
        self._controller = fields["controller"]
        self._next_id = fields["next_id"]
        self._records = {rec.id: rec for rec in records}
        self._by_owner = by_owner
