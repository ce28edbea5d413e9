from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple

from .config import CapitalStructure
from .decimal_math import ZERO
from .models import (
    DealConfig,
    PeriodCashflow,
    SimulationResult,
    TranchePayment,
    TrancheState,
    WaterfallPeriod,
)

logger = logging.getLogger("Tranching.Waterfall")


@dataclass
class PeriodContext:
    """Cash still to be routed in the current period."""

    period: int
    interest: Decimal                  # interest left to distribute
    reserve: Decimal                   # reserve balance right now
    reserve_draw: Decimal = ZERO
    reserve_replenishment: Decimal = ZERO
    diverted_interest: Decimal = ZERO
    principal: Decimal = ZERO          # principal left to distribute
    oc_passed: Optional[bool] = None   # None = no trigger configured
    ic_passed: Optional[bool] = None

    @property
    def tests_passed(self) -> bool:
        return self.oc_passed is not False and self.ic_passed is not False


def allocate_losses(states: List[TrancheState], losses: Decimal) -> Decimal:
    """
    Write losses down from the most junior tranche upwards.
    Returns the part that could not be allocated (all tranches exhausted).
    """
    remaining = losses
    for st in reversed(states):
        if remaining <= 0:
            break
        absorbed = min(remaining, st.current_balance)
        st.current_balance -= absorbed
        st.loss_allocated += absorbed
        remaining -= absorbed
    return remaining


def draw_reserve(states: List[TrancheState], ctx: PeriodContext) -> None:
    # top up interest from the reserve when collections don't cover all coupons
    total_due = sum((st.scheduled_coupon() for st in states), ZERO)
    if ctx.interest < total_due and ctx.reserve > 0:
        draw = min(total_due - ctx.interest, ctx.reserve)
        ctx.reserve -= draw
        ctx.interest += draw
        ctx.reserve_draw = draw


def run_coverage_tests(
    states: List[TrancheState],
    ctx: PeriodContext,
    collateral_balance: Decimal,
    interest_collected: Decimal,
    oc_trigger: Optional[Decimal],
    ic_trigger: Optional[Decimal],
) -> None:
    senior = states[0]

    if oc_trigger is not None:
        if senior.current_balance == 0:
            ctx.oc_passed = True
        else:
            effective_collateral = max(ZERO, collateral_balance) + ctx.reserve
            ctx.oc_passed = effective_collateral / senior.current_balance >= oc_trigger

    if ic_trigger is not None:
        senior_due = senior.scheduled_coupon()
        if senior_due == 0:
            ctx.ic_passed = True
        else:
            ctx.ic_passed = interest_collected / senior_due >= ic_trigger


def pay_interest(states: List[TrancheState], ctx: PeriodContext, payments: List[TranchePayment]) -> None:
    for st, pmt in zip(states, payments):
        if st.current_balance <= 0:
            continue
        due = st.scheduled_coupon()
        paid = min(due, ctx.interest)
        ctx.interest -= paid
        st.total_interest_received += paid
        pmt.interest_paid = paid
        pmt.interest_shortfall = due - paid

    # a failed test sends whatever the notes didn't take to senior principal
    if not ctx.tests_passed and ctx.interest > 0:
        ctx.diverted_interest = ctx.interest
        ctx.interest = ZERO


def pay_principal(states: List[TrancheState], ctx: PeriodContext, payments: List[TranchePayment]) -> None:
    def pay_principal_to(idx: int) -> None:
        st = states[idx]
        paid = min(st.current_balance, ctx.principal)
        st.current_balance -= paid
        st.total_principal_received += paid
        st.wal_numerator += ctx.period * paid
        payments[idx].principal_paid += paid
        ctx.principal -= paid

    live = [i for i, st in enumerate(states) if st.current_balance > 0]

    if not ctx.tests_passed:
        # turbo: everything to the most senior outstanding tranche
        if live and ctx.principal > 0:
            pay_principal_to(live[0])
    else:
        for idx in live:
            if ctx.principal <= 0:
                break
            pay_principal_to(idx)

    if ctx.principal > 0:
        logger.debug("Period %d: %s principal left undistributed", ctx.period, ctx.principal)


def replenish_reserve(ctx: PeriodContext, target: Decimal) -> None:
    if ctx.tests_passed and ctx.interest > 0 and ctx.reserve < target:
        top_up = min(target - ctx.reserve, ctx.interest)
        ctx.reserve += top_up
        ctx.interest -= top_up
        ctx.reserve_replenishment = top_up


def run_period(
    config: DealConfig,
    states: List[TrancheState],
    cf: PeriodCashflow,
    collateral_balance: Decimal,
    reserve_balance: Decimal,
) -> Tuple[WaterfallPeriod, Decimal, Decimal]:
    """
    One payment date. Mutates ``states`` and returns the period record with
    the closing collateral and reserve balances.

      1) Losses written down bottom-up
      2) Reserve draw if collections don't cover scheduled coupons
      3) OC / IC tests against the most senior tranche
      4) Interest by seniority; leftover diverted if a test failed
      5) Principal: reinvested, turbo to senior, or sequential
      6) Reserve replenished from leftover interest (tests passed only)
      7) Per-tranche cash recorded for IRR
    """
    ctx = PeriodContext(period=cf.period, interest=cf.interest, reserve=reserve_balance)

    # 1) Losses
    unallocated = allocate_losses(states, cf.losses)
    if unallocated > 0:
        logger.debug("Period %d: %s of losses exceed remaining tranche balance", cf.period, unallocated)
    collateral_balance = collateral_balance - cf.principal - cf.losses

    # 2) Interest available, with reserve support
    draw_reserve(states, ctx)

    # 3) Coverage tests
    run_coverage_tests(states, ctx, collateral_balance, cf.interest, config.oc_trigger, config.ic_trigger)

    # 4) Interest waterfall
    payments = [TranchePayment(tranche_name=st.name) for st in states]
    pay_interest(states, ctx, payments)

    # 5) Principal waterfall
    reinvesting = 0 < cf.period <= config.reinvestment_periods
    if reinvesting:
        collateral_balance += cf.principal
        ctx.principal = ctx.diverted_interest
    else:
        ctx.principal = cf.principal + ctx.diverted_interest
    pay_principal(states, ctx, payments)

    # 6) Reserve replenishment
    replenish_reserve(ctx, config.reserve_account)

    # 7) Record
    for st, pmt in zip(states, payments):
        st.cash_flows.append(pmt.total)

    logger.debug(
        "Period %d: interest=%s principal=%s losses=%s reserve=%s oc=%s ic=%s",
        cf.period, cf.interest, cf.principal, cf.losses, ctx.reserve, ctx.oc_passed, ctx.ic_passed,
    )

    record = WaterfallPeriod(
        period=cf.period,
        available_interest=cf.interest,
        available_principal=cf.principal,
        losses=cf.losses,
        tranche_payments=payments,
        reserve_balance=ctx.reserve,
        oc_test_result=ctx.oc_passed,
        ic_test_result=ctx.ic_passed,
        reserve_draw=ctx.reserve_draw,
        reserve_replenishment=ctx.reserve_replenishment,
        diverted_interest=ctx.diverted_interest,
        collateral_balance=collateral_balance,
        reinvesting=reinvesting,
    )
    return record, collateral_balance, ctx.reserve


def simulate(config: DealConfig, structure: CapitalStructure) -> SimulationResult:
    states = [TrancheState.at_issuance(spec) for spec in structure.sorted_tranches()]
    collateral_balance = config.collateral_balance
    reserve_balance = config.reserve_account

    periods: List[WaterfallPeriod] = []
    for cf in config.cashflows:
        record, collateral_balance, reserve_balance = run_period(
            config, states, cf, collateral_balance, reserve_balance
        )
        periods.append(record)

    return SimulationResult(
        tranche_states=states,
        waterfall_periods=periods,
        collateral_balance=collateral_balance,
        reserve_balance=reserve_balance,
    )
