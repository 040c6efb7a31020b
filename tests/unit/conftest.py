"""Общие фикстуры: развёртывание продажи на свежем ledger."""

from dataclasses import dataclass

import pytest

from tokensale.asset import CappedAsset, StablePaymentAsset
from tokensale.ledger import CallContext, Ledger
from tokensale.registry import HolderRegistry
from tokensale.sale import SaleEngine

T0 = 1_700_000_000

ADMIN = "0xadmin"
TREASURY = "0xtreasury"
BUYER = "0xbuyer"
OTHER = "0xother"

ONE_TOKEN = 10**18
ONE_USDT = 10**6


@dataclass
class Deployment:
    ledger: Ledger
    usdt: StablePaymentAsset
    token: CappedAsset
    registry: HolderRegistry
    engine: SaleEngine

    def ctx(self, caller: str) -> CallContext:
        return self.ledger.context(caller)

    def configure(self, t0: int = T0) -> None:
        """Два раунда (1 и 2 USDT) и три эпохи vesting."""
        self.engine.configure_rounds(
            self.ctx(ADMIN),
            prices=[1 * ONE_USDT, 2 * ONE_USDT],
            amounts=[1000 * ONE_TOKEN, 2000 * ONE_TOKEN],
            expected_total=3000 * ONE_TOKEN,
        )
        self.engine.configure_claim_schedule(
            self.ctx(ADMIN),
            [(t0 + 100, 3000), (t0 + 200, 3000), (t0 + 300, 4000)],
        )

    def open(self) -> None:
        self.configure()
        self.engine.open_sale(self.ctx(ADMIN))

    def approve(self, buyer: str, amount: int) -> None:
        self.usdt.approve(self.ctx(buyer), self.engine.address, amount)


def deploy(
    ledger: Ledger,
    fund_engine: int = 3000 * ONE_TOKEN,
    payment_asset_cls: type[StablePaymentAsset] = StablePaymentAsset,
) -> Deployment:
    usdt = payment_asset_cls(ledger, "0xusdt", issuer=BUYER, initial_supply=10_000 * ONE_USDT)
    token = CappedAsset(ledger, "0xtoken", admin=ADMIN, cap=10_000 * ONE_TOKEN)
    registry = HolderRegistry(ledger, "0xregistry", admin=ADMIN)
    engine = SaleEngine(
        ledger,
        "0xengine",
        admin=ADMIN,
        treasury=TREASURY,
        payment_asset=usdt,
        sale_asset=token,
        registry=registry,
    )
    registry.set_controller(ledger.context(ADMIN), engine.address)
    if fund_engine:
        token.mint(ledger.context(ADMIN), engine.address, fund_engine)
    return Deployment(ledger=ledger, usdt=usdt, token=token, registry=registry, engine=engine)


@pytest.fixture
def ledger():
    return Ledger(start_time=T0)


@pytest.fixture
def deployment(ledger):
    return deploy(ledger)
