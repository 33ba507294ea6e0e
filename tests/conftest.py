"""
Shared fixtures for ScoutLedger tests
"""
from __future__ import annotations

import pytest

from models import Group, Ledger, QuoteSettings
from repository import MemoryRepository
from store import LedgerStore


@pytest.fixture(autouse=True)
def _isolated_app_dir(tmp_path, monkeypatch):
    """Keep app_dir() away from the real home directory"""
    monkeypatch.setenv("SCOUT_LEDGER_HOME", str(tmp_path / "app"))


@pytest.fixture
def settings() -> QuoteSettings:
    """groupFee 6, bpParkFee 1, censimento 40, preCamp 15 (total 62)"""
    return QuoteSettings(
        installments={"first": 100.0, "second": 60.0, "third": 60.0, "summer_camp": 180.0},
        sibling_discounts={"0": 0.0, "1": 10.0, "2": 20.0, ">2": 30.0},
        group_fee=6.0,
        bp_park_fee=1.0,
        censimento=40.0,
        pre_camp=15.0,
    )


@pytest.fixture
def ledger(settings) -> Ledger:
    """Staff group (fund manager) plus two unit groups, no events"""
    return Ledger(
        groups=[
            Group(id="coca", name="Comunità Capi", color="blue", quote_settings=settings),
            Group(id="reparto", name="Reparto", color="green", quote_settings=settings),
            Group(id="branco", name="Branco", color="yellow", quote_settings=settings),
        ],
        group_fund_manager_id="coca",
    )


@pytest.fixture
def repository() -> MemoryRepository:
    return MemoryRepository()


@pytest.fixture
def store(ledger, repository) -> LedgerStore:
    return LedgerStore(repository, ledger)
