from __future__ import annotations

from decimal import Decimal
from typing import List

from .config import CapitalStructure, EngineSettings
from .decimal_math import annualize, irr, safe_div
from .models import TrancheResult, TrancheState


def yield_to_maturity(state: TrancheState, settings: EngineSettings, warnings: List[str]) -> Decimal:
    """Annualised IRR of the realised cash flows, bought at par."""
    freq = state.spec.payment_frequency
    tranche_warnings: List[str] = []
    periodic = irr(
        state.cash_flows,
        guess=settings.irr_guess / freq,
        max_iterations=settings.irr_max_iterations,
        tolerance=settings.irr_tolerance,
        rate_floor=settings.irr_rate_floor,
        rate_cap=settings.irr_rate_cap,
        warnings=tranche_warnings,
    )
    warnings.extend(f"Tranche {state.name}: {w}" for w in tranche_warnings)
    return annualize(periodic, freq)


def weighted_average_life(state: TrancheState) -> Decimal:
    # wal_numerator is in periods; dividing by frequency gives years
    return safe_div(
        state.wal_numerator,
        state.total_principal_received * state.spec.payment_frequency,
    )


def build_tranche_results(
    states: List[TrancheState],
    structure: CapitalStructure,
    settings: EngineSettings,
    warnings: List[str],
) -> List[TrancheResult]:
    results = []
    for st in states:
        results.append(
            TrancheResult(
                name=st.name,
                seniority=st.spec.seniority,
                is_fixed_rate=st.spec.is_fixed_rate,
                original_balance=st.spec.balance,
                ending_balance=st.current_balance,
                total_interest_received=st.total_interest_received,
                total_principal_received=st.total_principal_received,
                loss_allocated=st.loss_allocated,
                yield_to_maturity=yield_to_maturity(st, settings, warnings),
                weighted_average_life=weighted_average_life(st),
                credit_enhancement_pct=structure.subordination_pct(st.spec),
            )
        )
    return results
