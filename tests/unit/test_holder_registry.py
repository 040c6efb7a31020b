"""Тесты HolderRegistry.

Coverage:
- Однократная привязка контроллера
- Только контроллер мутирует записи
- Одна запись на владельца, id с 1
- claimed_total никогда не превышает locked_total
- Экспорт/импорт состояния
"""

import pytest

from tokensale.core.errors import (
    ControllerAlreadySet,
    InvalidInput,
    InvariantViolation,
    NotAdmin,
    NotSaleManager,
)
from tokensale.ledger import Ledger
from tokensale.registry import HolderRegistry

ADMIN = "0xadmin"
ENGINE = "0xengine"
ALICE = "0xalice"
BOB = "0xbob"


@pytest.fixture
def ledger():
    return Ledger(start_time=1_000)


@pytest.fixture
def registry(ledger):
    reg = HolderRegistry(ledger, "0xregistry", admin=ADMIN)
    reg.set_controller(ledger.context(ADMIN), ENGINE)
    return reg


class TestController:
    """Тесты привязки контроллера."""

    def test_controller_set(self, registry):
        assert registry.controller == ENGINE

    def test_controller_set_once(self, ledger, registry):
        with pytest.raises(ControllerAlreadySet):
            registry.set_controller(ledger.context(ADMIN), "0xother")
        assert registry.controller == ENGINE

    def test_set_controller_requires_admin(self, ledger):
        reg = HolderRegistry(ledger, "0xreg2", admin=ADMIN)
        with pytest.raises(NotAdmin):
            reg.set_controller(ledger.context(ALICE), ALICE)
        assert reg.controller is None

    def test_mutations_require_controller(self, ledger, registry):
        with pytest.raises(NotSaleManager):
            registry.get_or_create(ledger.context(ALICE), ALICE)
        assert registry.identity_count == 0

    def test_no_controller_rejects_everyone(self, ledger):
        reg = HolderRegistry(ledger, "0xreg2", admin=ADMIN)
        with pytest.raises(NotSaleManager):
            reg.get_or_create(ledger.context(ADMIN), ALICE)


class TestRecords:
    """Тесты записей идентичностей."""

    def test_ids_start_at_one(self, ledger, registry):
        ctx = ledger.context(ENGINE)
        assert registry.get_or_create(ctx, ALICE) == 1
        assert registry.get_or_create(ctx, BOB) == 2

    def test_one_record_per_owner(self, ledger, registry):
        ctx = ledger.context(ENGINE)
        first = registry.get_or_create(ctx, ALICE)
        second = registry.get_or_create(ctx, ALICE)

        assert first == second
        assert registry.identity_count == 1
        assert registry.identity_of(ALICE) == first

    def test_unknown_address_has_no_identity(self, registry):
        assert registry.identity_of("0xnobody") == 0
        assert registry.owner_of(0) is None
        assert registry.total_locked(99) == 0

    def test_increase_locked_and_claim(self, ledger, registry):
        ctx = ledger.context(ENGINE)
        identity = registry.get_or_create(ctx, ALICE)
        registry.increase_locked(ctx, identity, 100)
        registry.increase_locked(ctx, identity, 50)
        registry.record_claim(ctx, identity, 30)

        rec = registry.record(identity)
        assert rec.owner == ALICE
        assert rec.locked_total == 150
        assert rec.claimed_total == 30
        assert registry.total_claimed(identity) == 30

    def test_unknown_identity_rejected(self, ledger, registry):
        with pytest.raises(InvalidInput):
            registry.increase_locked(ledger.context(ENGINE), 7, 100)

    def test_over_claim_rejected(self, ledger, registry):
        """claimed_total не может превысить locked_total; состояние не меняется."""
        ctx = ledger.context(ENGINE)
        identity = registry.get_or_create(ctx, ALICE)
        registry.increase_locked(ctx, identity, 100)

        with pytest.raises(InvariantViolation):
            registry.record_claim(ctx, identity, 101)
        assert registry.total_claimed(identity) == 0

    def test_negative_amount_rejected(self, ledger, registry):
        ctx = ledger.context(ENGINE)
        identity = registry.get_or_create(ctx, ALICE)
        with pytest.raises(InvalidInput):
            registry.increase_locked(ctx, identity, -5)


class TestRegistryState:
    """Тесты экспорта/импорта состояния."""

    def test_round_trip(self, ledger, registry):
        ctx = ledger.context(ENGINE)
        identity = registry.get_or_create(ctx, ALICE)
        registry.increase_locked(ctx, identity, 100)
        state = registry.export_state()

        restored = HolderRegistry(Ledger(), "0xregistry", admin=ADMIN)
        restored.load_state(state)

        assert restored.controller == ENGINE
        assert restored.identity_of(ALICE) == identity
        assert restored.total_locked(identity) == 100
        # Следующий id продолжает нумерацию
        assert restored.get_or_create(Ledger().context(ENGINE), BOB) == 2

    def test_duplicate_owner_rejected(self, registry):
        state = registry.export_state()
        state["next_id"] = 3
        state["records"] = [
            {"id": 1, "owner": ALICE, "locked_total": 0, "claimed_total": 0},
            {"id": 2, "owner": ALICE, "locked_total": 0, "claimed_total": 0},
        ]
        with pytest.raises(InvalidInput):
            registry.load_state(state)
        assert registry.identity_count == 0

    def test_next_id_collision_rejected(self, registry):
        state = registry.export_state()
        state["records"] = [{"id": 1, "owner": ALICE, "locked_total": 0, "claimed_total": 0}]
        state["next_id"] = 1
        with pytest.raises(InvalidInput):
            registry.load_state(state)
