from dataclasses import replace
from decimal import Decimal

import pytest

from tranching_engine.config import CapitalStructure, EngineSettings, validate_deal
from tranching_engine.errors import ConfigurationError
from tranching_engine.models import DealConfig, PeriodCashflow, TrancheSpec
from tranching_engine.runner import run_waterfall


def base_deal():
    return DealConfig(
        deal_name="Validation Deal",
        collateral_balance=Decimal("1000"),
        tranches=(
            TrancheSpec("A", Decimal("800"), Decimal("0.04"), 1, True, 4),
            TrancheSpec("B", Decimal("100"), Decimal("0.08"), 2, True, 4),
        ),
        cashflows=(PeriodCashflow(1, Decimal("5"), Decimal("50"), Decimal("0")),),
    )


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"tranches": ()}, "tranches"),
        ({"cashflows": ()}, "cashflows"),
        ({"collateral_balance": Decimal("-100")}, "collateral_balance"),
        ({"collateral_balance": Decimal("500")}, "tranches"),
        ({"reserve_account": Decimal("-1")}, "reserve_account"),
        ({"oc_trigger": Decimal("0")}, "oc_trigger"),
        ({"reinvestment_periods": -1}, "reinvestment_periods"),
    ],
)
def test_deal_level_errors(overrides, field):
    with pytest.raises(ConfigurationError) as exc:
        validate_deal(replace(base_deal(), **overrides))
    assert exc.value.field == field
    assert exc.value.reason


@pytest.mark.parametrize(
    "tranche, field",
    [
        (TrancheSpec("C", Decimal("0"), Decimal("0.10"), 3, True, 4), "tranche[C].balance"),
        (TrancheSpec("C", Decimal("50"), Decimal("0.10"), 3, True, 0), "tranche[C].payment_frequency"),
        (TrancheSpec("C", Decimal("50"), Decimal("-0.01"), 3, True, 4), "tranche[C].coupon_rate"),
        (TrancheSpec("C", Decimal("50"), Decimal("0.10"), 2, True, 4), "tranche[C].seniority"),
    ],
)
def test_tranche_level_errors(tranche, field):
    deal = base_deal()
    with pytest.raises(ConfigurationError) as exc:
        validate_deal(replace(deal, tranches=deal.tranches + (tranche,)))
    assert exc.value.field == field


def test_cashflow_errors():
    deal = base_deal()
    out_of_order = (
        PeriodCashflow(2, Decimal("5"), Decimal("50"), Decimal("0")),
        PeriodCashflow(1, Decimal("5"), Decimal("50"), Decimal("0")),
    )
    with pytest.raises(ConfigurationError) as exc:
        validate_deal(replace(deal, cashflows=out_of_order))
    assert exc.value.field == "cashflows[1].period"

    negative = (PeriodCashflow(1, Decimal("5"), Decimal("-50"), Decimal("0")),)
    with pytest.raises(ConfigurationError) as exc:
        validate_deal(replace(deal, cashflows=negative))
    assert exc.value.field == "cashflows[1].principal"


def test_run_waterfall_rejects_invalid_config_before_running():
    with pytest.raises(ConfigurationError, match="exceeds collateral"):
        run_waterfall(replace(base_deal(), collateral_balance=Decimal("100")))


def test_zero_coupon_tranche_is_allowed():
    deal = base_deal()
    zero = replace(deal, tranches=deal.tranches + (TrancheSpec("Residual", Decimal("50"), Decimal("0"), 3, False, 4),))
    structure = validate_deal(zero)
    assert [t.name for t in structure.sorted_tranches()] == ["A", "B", "Residual"]


def test_capital_structure_sorting_and_subordination():
    structure = CapitalStructure(
        tranches=[
            TrancheSpec("Equity", Decimal("100"), Decimal("0.12"), 9, True, 4),
            TrancheSpec("AAA", Decimal("600"), Decimal("0.03"), 1, True, 4),
            TrancheSpec("BBB", Decimal("300"), Decimal("0.06"), 4, True, 4),
        ]
    )

    assert [t.name for t in structure.sorted_tranches()] == ["AAA", "BBB", "Equity"]
    assert structure.senior().name == "AAA"
    assert structure.total_balance() == Decimal("1000")
    levels = {s.tranche_name: s.subordination_pct for s in structure.subordination()}
    assert levels == {"AAA": Decimal("0.4"), "BBB": Decimal("0.1"), "Equity": Decimal("0")}


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("TRANCHING_IRR_MAX_ITERATIONS", "100")
    monkeypatch.setenv("TRANCHING_IRR_GUESS", "0.08")
    monkeypatch.setenv("TRANCHING_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("TRANCHING_DECIMAL_PRECISION", "not-a-number")

    s = EngineSettings.from_env()

    assert s.irr_max_iterations == 100
    assert s.irr_guess == Decimal("0.08")
    assert s.log_level == "DEBUG"
    assert s.decimal_precision == 28


def test_settings_defaults(monkeypatch):
    for name in ("IRR_MAX_ITERATIONS", "IRR_GUESS", "LOG_LEVEL", "DECIMAL_PRECISION"):
        monkeypatch.delenv(f"TRANCHING_{name}", raising=False)
    s = EngineSettings.from_env()
    assert s == EngineSettings()
