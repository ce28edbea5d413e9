from __future__ import annotations

from decimal import Decimal
from typing import List

from .config import CapitalStructure, EngineSettings
from .decimal_math import ZERO, safe_div
from .models import CreditEnhancement, DealConfig, DealSummary, SimulationResult, TrancheResult


def weighted_avg_tranche_cost(structure: CapitalStructure) -> Decimal:
    weighted = sum((t.balance * t.coupon_rate for t in structure.tranches), ZERO)
    return safe_div(weighted, structure.total_balance())


def build_deal_summary(
    config: DealConfig,
    structure: CapitalStructure,
    results: List[TrancheResult],
) -> DealSummary:
    total_tranches = structure.total_balance()
    return DealSummary(
        total_collateral=config.collateral_balance,
        total_tranches=total_tranches,
        excess_collateral=config.collateral_balance - total_tranches,
        weighted_avg_tranche_cost=weighted_avg_tranche_cost(structure),
        # allocated losses only, so never more than the notes outstanding
        total_losses=sum((r.loss_allocated for r in results), ZERO),
        total_interest_distributed=sum((r.total_interest_received for r in results), ZERO),
        total_principal_distributed=sum((r.total_principal_received for r in results), ZERO),
    )


def build_credit_enhancement(
    config: DealConfig,
    structure: CapitalStructure,
    sim: SimulationResult,
    settings: EngineSettings,
) -> CreditEnhancement:
    """
    Initial / final OC, excess spread and reserve sizing.

    Excess spread compares an annualised collateral yield (mean period
    interest over the original pool, scaled by the senior tranche's payment
    frequency) with the balance-weighted tranche coupon.
    """
    oc_initial = safe_div(config.collateral_balance, structure.total_balance())

    final_tranches = sum((st.current_balance for st in sim.tranche_states), ZERO)
    final_collateral = max(ZERO, sim.collateral_balance)
    if final_tranches == 0:
        oc_final = settings.oc_final_sentinel if final_collateral > 0 else ZERO
    else:
        oc_final = final_collateral / final_tranches

    periods_per_year = structure.senior().payment_frequency
    total_interest = sum((cf.interest for cf in config.cashflows), ZERO)
    mean_interest = safe_div(total_interest, Decimal(len(config.cashflows)))
    collateral_yield = safe_div(mean_interest, config.collateral_balance) * periods_per_year

    return CreditEnhancement(
        subordination=structure.subordination(),
        overcollateralisation_initial=oc_initial,
        overcollateralisation_final=oc_final,
        excess_spread=collateral_yield - weighted_avg_tranche_cost(structure),
        reserve_account_pct=safe_div(config.reserve_account, config.collateral_balance),
    )
