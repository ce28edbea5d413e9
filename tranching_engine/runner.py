from __future__ import annotations

import logging
import time
from decimal import localcontext
from typing import Dict, List, Optional

import pandas as pd

from .analytics import build_tranche_results
from .config import EngineSettings, validate_deal
from .excel_writer import ensure_template, write_tranching_pack
from .inputs import read_deal_config
from .models import DealConfig, TranchingReport
from .reporting import build_report_tables
from .summary import build_credit_enhancement, build_deal_summary
from .waterfall import simulate

__version__ = "1.0.0"

METHODOLOGY = "CDO/CLO Tranching: waterfall distribution with OC/IC tests"

logger = logging.getLogger("Tranching.Runner")


def run_waterfall(config: DealConfig, settings: Optional[EngineSettings] = None) -> TranchingReport:
    """
    Validate, simulate every period, then derive tranche and deal analytics.

    Raises ConfigurationError before anything runs if the deal is invalid.
    IRR trouble and degenerate ratios don't raise; they end up as fallback
    values plus entries in ``report.warnings``.
    """
    settings = settings or EngineSettings.from_env()
    start = time.perf_counter()

    structure = validate_deal(config)
    warnings: List[str] = []

    with localcontext() as ctx:
        ctx.prec = settings.decimal_precision

        sim = simulate(config, structure)
        tranche_results = build_tranche_results(sim.tranche_states, structure, settings, warnings)
        deal_summary = build_deal_summary(config, structure, tranche_results)
        credit_enhancement = build_credit_enhancement(config, structure, sim, settings)

    logger.info(
        "Deal %s: %d tranches over %d periods in %.1f ms (%d warnings)",
        config.deal_name,
        len(config.tranches),
        len(config.cashflows),
        (time.perf_counter() - start) * 1000,
        len(warnings),
    )

    return TranchingReport(
        deal_name=config.deal_name,
        tranche_results=tranche_results,
        credit_enhancement=credit_enhancement,
        waterfall_periods=sim.waterfall_periods,
        deal_summary=deal_summary,
        warnings=warnings,
        methodology=METHODOLOGY,
        assumptions={
            "deal_name": config.deal_name,
            "collateral_balance": str(config.collateral_balance),
            "num_tranches": len(config.tranches),
            "num_periods": len(config.cashflows),
            "reinvestment_periods": config.reinvestment_periods,
        },
        metadata={
            "version": __version__,
            "precision": f"decimal_{settings.decimal_precision}",
        },
    )


def run_tranching_pack(
    input_xlsx: str,
    template_xlsx: str,
    output_xlsx: str,
    settings: Optional[EngineSettings] = None,
) -> Dict[str, pd.DataFrame]:
    """
    End-to-end run:
      - Reads the deal workbook (Deal/Tranches/Cashflows)
      - Runs the waterfall over every period
      - Builds the report tables
      - Writes the pack into output_xlsx (from template_xlsx)
      - Returns the DataFrames for display
    """
    ensure_template(template_xlsx)

    config = read_deal_config(input_xlsx)
    report = run_waterfall(config, settings)

    dfs = build_report_tables(report)
    write_tranching_pack(template_xlsx, output_xlsx, dfs)
    return dfs
