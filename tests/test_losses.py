from decimal import Decimal

from tranching_engine.config import validate_deal
from tranching_engine.models import DealConfig, PeriodCashflow, TrancheSpec, TrancheState
from tranching_engine.runner import run_waterfall
from tranching_engine.waterfall import allocate_losses, run_period


def make_cashflows(n, interest, principal, losses):
    return tuple(
        PeriodCashflow(p, Decimal(interest), Decimal(principal), Decimal(losses)) for p in range(1, n + 1)
    )


SENIOR_EQUITY = (
    TrancheSpec("Senior", Decimal("800"), Decimal("0.04"), 1, True, 4),
    TrancheSpec("Equity", Decimal("150"), Decimal("0.10"), 2, True, 4),
)

AAA_BBB_EQUITY = (
    TrancheSpec("AAA", Decimal("600"), Decimal("0.03"), 1, True, 4),
    TrancheSpec("BBB", Decimal("200"), Decimal("0.06"), 2, True, 4),
    TrancheSpec("Equity", Decimal("100"), Decimal("0.12"), 3, True, 4),
)


def test_equity_absorbs_first_then_senior():
    config = DealConfig(
        deal_name="Loss Deal",
        collateral_balance=Decimal("1000"),
        tranches=SENIOR_EQUITY,
        cashflows=make_cashflows(4, "25", "200", "50"),
        reserve_account=Decimal("10"),
    )
    report = run_waterfall(config)

    assert report.tranche("Equity").loss_allocated == Decimal("150")
    assert report.tranche("Senior").loss_allocated == Decimal("50")
    assert report.deal_summary.total_losses == Decimal("200")


def test_losses_exceed_equity_and_impair_mezzanine():
    config = DealConfig(
        deal_name="Mezz Loss Deal",
        collateral_balance=Decimal("1000"),
        tranches=AAA_BBB_EQUITY,
        cashflows=make_cashflows(4, "20", "100", "50"),
        reserve_account=Decimal("20"),
    )
    report = run_waterfall(config)

    assert report.tranche("Equity").loss_allocated == Decimal("100")
    assert report.tranche("BBB").loss_allocated == Decimal("100")
    assert report.tranche("AAA").loss_allocated == 0


def test_small_losses_stay_with_equity():
    config = DealConfig(
        deal_name="Light Loss Deal",
        collateral_balance=Decimal("1000"),
        tranches=SENIOR_EQUITY,
        cashflows=make_cashflows(4, "25", "200", "7.5"),
        reserve_account=Decimal("10"),
    )
    report = run_waterfall(config)

    assert report.tranche("Senior").loss_allocated == 0
    assert report.tranche("Equity").loss_allocated == Decimal("30")


def test_total_wipeout_caps_losses_at_tranche_balance():
    config = DealConfig(
        deal_name="Wipeout",
        collateral_balance=Decimal("1000"),
        tranches=(
            TrancheSpec("Senior", Decimal("600"), Decimal("0.04"), 1, True, 4),
            TrancheSpec("Junior", Decimal("200"), Decimal("0.08"), 2, True, 4),
            TrancheSpec("Equity", Decimal("100"), Decimal("0.12"), 3, True, 4),
        ),
        cashflows=make_cashflows(4, "10", "0", "250"),
    )
    report = run_waterfall(config)

    # 1000 of losses against 900 of notes: only 900 can be allocated
    assert report.deal_summary.total_losses == Decimal("900")
    for r in report.tranche_results:
        assert r.ending_balance == 0
        assert r.loss_allocated == r.original_balance


def test_allocate_losses_returns_unallocated_remainder():
    states = [TrancheState.at_issuance(t) for t in SENIOR_EQUITY]
    left = allocate_losses(states, Decimal("1000"))

    assert left == Decimal("50")
    assert [s.current_balance for s in states] == [0, 0]


def test_balances_never_negative_and_losses_strictly_bottom_up():
    config = DealConfig(
        deal_name="Stress",
        collateral_balance=Decimal("1000"),
        tranches=AAA_BBB_EQUITY,
        cashflows=make_cashflows(8, "5", "60", "70"),
        reserve_account=Decimal("5"),
        oc_trigger=Decimal("1.30"),
    )
    structure = validate_deal(config)
    states = [TrancheState.at_issuance(t) for t in structure.sorted_tranches()]
    collateral, reserve = config.collateral_balance, config.reserve_account

    for cf in config.cashflows:
        _, collateral, reserve = run_period(config, states, cf, collateral, reserve)

        assert reserve >= 0
        for i, st in enumerate(states):
            assert st.current_balance >= 0
            if st.loss_allocated > 0:
                # everything junior to a written-down tranche must already be gone
                assert all(j.current_balance == 0 for j in states[i + 1:])

        total_loss = sum(st.loss_allocated for st in states)
        assert total_loss <= structure.total_balance()
