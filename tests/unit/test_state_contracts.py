"""
Tests for JSON Schema State Contracts

Комплексное тестирование контрактов экспортированного состояния:
- Валидность самих схем
- Валидация реального экспорта компонентов
- Детекция нарушений required полей
- Детекция нарушений типов и constraints
- additionalProperties: false
"""

import pytest
from jsonschema import Draft202012Validator, ValidationError

from conftest import ADMIN, BUYER, ONE_USDT, deploy
from tokensale.allocator import Allocator
from tokensale.core.contracts import (
    ContractValidator,
    SchemaLoader,
    StateContractValidator,
    default_loader,
    validate_state,
)
from tokensale.core.domain import Category
from tokensale.ledger import Ledger

SCHEMA_NAMES = [
    "sale_engine_state_v1",
    "sale_engine_state_v2",
    "holder_registry_state_v1",
    "allocator_state_v1",
    "capped_asset_state_v1",
]


@pytest.fixture
def active():
    d = deploy(Ledger(start_time=1_700_000_000))
    d.open()
    d.approve(BUYER, ONE_USDT)
    d.engine.buy(d.ctx(BUYER), ONE_USDT)
    return d


# =============================================================================
# SCHEMA LOADING
# =============================================================================


class TestSchemaLoader:
    """Тесты загрузки схем."""

    @pytest.mark.parametrize("name", SCHEMA_NAMES)
    def test_schema_is_valid(self, name):
        schema = SchemaLoader().load_schema(name)
        Draft202012Validator.check_schema(schema)
        assert schema["additionalProperties"] is False

    def test_schema_cached(self):
        loader = SchemaLoader()
        assert loader.load_schema("allocator_state_v1") is loader.load_schema("allocator_state_v1")

    def test_missing_schema(self):
        with pytest.raises(FileNotFoundError):
            SchemaLoader().load_schema("sale_engine_state_v99")

    def test_missing_directory(self, tmp_path):
        with pytest.raises(RuntimeError):
            SchemaLoader(tmp_path / "nope")

    def test_invalid_schema_rejected(self, tmp_path):
        (tmp_path / "broken.json").write_text('{"type": "no-such-type"}', encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid JSON Schema"):
            SchemaLoader(tmp_path).load_schema("broken")

    def test_available_lists_packaged_contracts(self):
        assert default_loader().available() == sorted(SCHEMA_NAMES)

    def test_validator_with_explicit_loader(self, tmp_path):
        (tmp_path / "thing_state_v1.json").write_text(
            '{"type": "object", "required": ["schema_version"]}', encoding="utf-8"
        )
        validator = StateContractValidator("thing", 1, loader=SchemaLoader(tmp_path))

        assert validator.required_fields() == ["schema_version"]
        assert not validator.is_valid({})


# =============================================================================
# COMPONENT EXPORTS
# =============================================================================


class TestExportsMatchContracts:
    """Экспорт каждого компонента проходит свой контракт."""

    def test_sale_engine_v1(self, active):
        state = active.engine.export_state()
        assert StateContractValidator("sale_engine", 1).is_valid(state)

    def test_sale_engine_v2(self, active):
        active.engine.initialize_v2(active.ctx(ADMIN), "0xoperator")
        state = active.engine.export_state()
        validator = StateContractValidator("sale_engine", 2)

        assert validator.is_valid(state)
        assert set(validator.required_fields()) == set(state)

    def test_registry(self, active):
        validate_state("holder_registry", active.registry.export_state())

    def test_capped_asset(self, active):
        validate_state("capped_asset", active.token.export_state())

    def test_allocator(self, active):
        allocator = Allocator(active.ledger, "0xallocator", admin=ADMIN, asset=active.token)
        allocator.set_category(active.ctx(ADMIN), Category.TEAM, "0xteam", 10)
        validate_state("allocator", allocator.export_state())


# =============================================================================
# VIOLATIONS
# =============================================================================


class TestContractViolations:
    """Тесты детекции нарушений."""

    def test_missing_required_field(self, active):
        state = active.engine.export_state()
        del state["treasury"]
        with pytest.raises(ValidationError, match="treasury"):
            validate_state("sale_engine", state)

    def test_additional_property(self, active):
        state = active.registry.export_state()
        state["extra"] = 1
        with pytest.raises(ValidationError):
            validate_state("holder_registry", state)

    def test_wrong_type(self, active):
        state = active.engine.export_state()
        state["opened"] = "yes"
        assert not ContractValidator("sale_engine_state_v1").is_valid(state)

    def test_bps_out_of_range(self, active):
        state = active.engine.export_state()
        state["epochs"][0]["bps"] = 10_001
        errors = list(StateContractValidator("sale_engine", 1).iter_errors(state))
        assert len(errors) == 1

    def test_error_messages_carry_path(self, active):
        state = active.engine.export_state()
        state["epochs"][0]["bps"] = 10_001
        state["opened"] = "yes"

        messages = StateContractValidator("sale_engine", 1).error_messages(state)

        assert len(messages) == 2
        assert messages[0].startswith("epochs/0/bps: ")
        assert messages[1].startswith("opened: ")

    def test_violation_logged(self, active, caplog):
        state = active.registry.export_state()
        state["extra"] = 1
        with caplog.at_level("WARNING", logger="tokensale.core.contracts.validators"):
            with pytest.raises(ValidationError):
                validate_state("holder_registry", state)
        assert "holder_registry_state_v1" in caplog.text

    def test_negative_balance(self, active):
        state = active.token.export_state()
        state["balances"][BUYER] = -1
        with pytest.raises(ValidationError):
            validate_state("capped_asset", state)

    def test_unknown_category(self):
        state = {
            "schema_version": 1,
            "admin": ADMIN,
            "asset": "0xtoken",
            "categories": [
                {"category": 5, "wallet": None, "amount": 0, "disbursed": False, "disbursed_total": 0}
            ],
        }
        with pytest.raises(ValidationError):
            validate_state("allocator", state)

    def test_schema_version_must_be_int(self, active):
        state = active.engine.export_state()
        state["schema_version"] = True
        with pytest.raises(ValidationError, match="schema_version"):
            validate_state("sale_engine", state)

    def test_version_without_contract(self, active):
        state = active.engine.export_state()
        state["schema_version"] = 7
        with pytest.raises(FileNotFoundError):
            validate_state("sale_engine", state)
