from __future__ import annotations

from decimal import Decimal
from typing import Dict, Optional

import pandas as pd

from .models import TranchingReport


def _f(x: Decimal) -> float:
    return float(x)


def _test_label(result: Optional[bool]) -> str:
    if result is None:
        return "N/A"
    return "PASS" if result else "FAIL"


def build_tranche_results(report: TranchingReport) -> pd.DataFrame:
    rows = []
    for r in report.tranche_results:
        rows.append({
            "Tranche": r.name,
            "Seniority": r.seniority,
            "Fixed Rate": "Yes" if r.is_fixed_rate else "No",
            "Original Balance": _f(r.original_balance),
            "Ending Balance": _f(r.ending_balance),
            "Interest Received": _f(r.total_interest_received),
            "Principal Received": _f(r.total_principal_received),
            "Loss Allocated": _f(r.loss_allocated),
            "Yield to Maturity": _f(r.yield_to_maturity),
            "WAL (years)": _f(r.weighted_average_life),
            "Credit Enhancement": _f(r.credit_enhancement_pct),
        })
    return pd.DataFrame(rows)


def build_period_waterfall(report: TranchingReport) -> pd.DataFrame:
    rows = []
    for wp in report.waterfall_periods:
        rows.append({
            "Period": wp.period,
            "Interest Collected": _f(wp.available_interest),
            "Principal Collected": _f(wp.available_principal),
            "Losses": _f(wp.losses),
            "Reserve Draw": _f(wp.reserve_draw),
            "Diverted Interest": _f(wp.diverted_interest),
            "Reserve Replenish": _f(wp.reserve_replenishment),
            "Reserve Closing": _f(wp.reserve_balance),
            "Collateral Closing": _f(wp.collateral_balance),
            "Reinvesting": "Yes" if wp.reinvesting else "No",
            "OC Test": _test_label(wp.oc_test_result),
            "IC Test": _test_label(wp.ic_test_result),
        })
    return pd.DataFrame(rows)


def build_tranche_payments(report: TranchingReport) -> pd.DataFrame:
    rows = []
    for wp in report.waterfall_periods:
        for p in wp.tranche_payments:
            rows.append({
                "Period": wp.period,
                "Tranche": p.tranche_name,
                "Interest Paid": _f(p.interest_paid),
                "Principal Paid": _f(p.principal_paid),
                "Interest Shortfall": _f(p.interest_shortfall),
            })
    return pd.DataFrame(rows, columns=["Period", "Tranche", "Interest Paid", "Principal Paid", "Interest Shortfall"])


def build_credit_enhancement(report: TranchingReport) -> pd.DataFrame:
    ce = report.credit_enhancement
    rows = [{"metric": f"Subordination - {s.tranche_name}", "value": _f(s.subordination_pct)} for s in ce.subordination]
    rows += [
        {"metric": "OC Ratio (Initial)", "value": _f(ce.overcollateralisation_initial)},
        {"metric": "OC Ratio (Final)", "value": _f(ce.overcollateralisation_final)},
        {"metric": "Excess Spread", "value": _f(ce.excess_spread)},
        {"metric": "Reserve / Collateral", "value": _f(ce.reserve_account_pct)},
    ]
    return pd.DataFrame(rows)


def build_deal_summary(report: TranchingReport) -> pd.DataFrame:
    s = report.deal_summary
    rows = [
        {"metric": "Deal", "value": report.deal_name},
        {"metric": "Total Collateral", "value": _f(s.total_collateral)},
        {"metric": "Total Tranches", "value": _f(s.total_tranches)},
        {"metric": "Excess Collateral", "value": _f(s.excess_collateral)},
        {"metric": "Weighted Avg Tranche Cost", "value": _f(s.weighted_avg_tranche_cost)},
        {"metric": "Total Losses", "value": _f(s.total_losses)},
        {"metric": "Total Interest Distributed", "value": _f(s.total_interest_distributed)},
        {"metric": "Total Principal Distributed", "value": _f(s.total_principal_distributed)},
        {"metric": "Methodology", "value": report.methodology},
        {"metric": "Engine Version", "value": report.metadata.get("version", "")},
    ]
    return pd.DataFrame(rows)


def build_warnings(report: TranchingReport) -> pd.DataFrame:
    return pd.DataFrame({"warning": list(report.warnings)}, columns=["warning"])


def build_report_tables(report: TranchingReport) -> Dict[str, pd.DataFrame]:
    return {
        "Tranche Results": build_tranche_results(report),
        "Period Waterfall": build_period_waterfall(report),
        "Tranche Payments": build_tranche_payments(report),
        "Credit Enhancement": build_credit_enhancement(report),
        "Deal Summary": build_deal_summary(report),
        "Warnings": build_warnings(report),
    }
