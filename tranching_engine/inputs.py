from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

import pandas as pd

from .errors import ConfigurationError
from .models import DealConfig, PeriodCashflow, TrancheSpec

TRANCHE_COLUMNS = {"name", "balance", "coupon_rate", "seniority", "payment_frequency"}
CASHFLOW_COLUMNS = {"period", "interest", "principal", "losses"}


def _open_workbook(path: str) -> pd.ExcelFile:
    try:
        return pd.ExcelFile(path)
    except (ValueError, OSError) as exc:
        # pandas raises ValueError when the bytes aren't a known spreadsheet format
        raise ConfigurationError("workbook", f"Cannot read input workbook: {exc}") from exc


def _read_table(book: pd.ExcelFile, sheet: str) -> pd.DataFrame:
    if sheet not in book.sheet_names:
        raise ConfigurationError(sheet, f"Input workbook has no '{sheet}' sheet")
    return book.parse(sheet)


def _is_blank(v: object) -> bool:
    return v is None or str(v).strip() in ("", "nan", "None", "NaN")


def _to_decimal(v: object, field: str) -> Decimal:
    if _is_blank(v):
        raise ConfigurationError(field, "Value is required")
    try:
        return Decimal(str(v).strip())
    except InvalidOperation as exc:
        raise ConfigurationError(field, f"Not a number: {v!r}") from exc


def _to_int(v: object, field: str) -> int:
    d = _to_decimal(v, field)
    if d != d.to_integral_value():
        raise ConfigurationError(field, f"Expected a whole number, got {v!r}")
    return int(d)


def _to_optional_decimal(v: object, field: str) -> Optional[Decimal]:
    return None if _is_blank(v) else _to_decimal(v, field)


def _to_bool(v: object) -> bool:
    if _is_blank(v):
        return True
    if isinstance(v, str):
        return v.strip().lower() in ("true", "1", "yes", "y", "fixed")
    return bool(v)


def read_deal_config(excel_path: str) -> DealConfig:
    """
    Expected sheets:
      - Deal (key/value table: deal_name, collateral_balance, reserve_account,
        oc_trigger, ic_trigger, reinvestment_periods)
      - Tranches (name, balance, coupon_rate, seniority, payment_frequency,
        [optional: is_fixed_rate])
      - Cashflows (period, interest, principal, losses)
    Blank trigger cells mean the trigger isn't configured.
    """
    with _open_workbook(excel_path) as book:
        deal_df = _read_table(book, "Deal")
        tr_df = _read_table(book, "Tranches")
        cf_df = _read_table(book, "Cashflows")

    if set(deal_df.columns) != {"key", "value"}:
        raise ConfigurationError("Deal", "Deal sheet must have columns: key, value")
    deal_kv: Dict[str, object] = {str(k).strip(): v for k, v in zip(deal_df["key"], deal_df["value"])}

    if "collateral_balance" not in deal_kv:
        raise ConfigurationError("collateral_balance", "Missing from Deal sheet")

    if not TRANCHE_COLUMNS.issubset(tr_df.columns):
        raise ConfigurationError("Tranches", f"Tranches sheet must include columns: {sorted(TRANCHE_COLUMNS)}")

    tranches: List[TrancheSpec] = []
    for _, r in tr_df.iterrows():
        name = str(r["name"])
        tranches.append(
            TrancheSpec(
                name=name,
                balance=_to_decimal(r["balance"], f"tranche[{name}].balance"),
                coupon_rate=_to_decimal(r["coupon_rate"], f"tranche[{name}].coupon_rate"),
                seniority=_to_int(r["seniority"], f"tranche[{name}].seniority"),
                is_fixed_rate=_to_bool(r.get("is_fixed_rate", True)),
                payment_frequency=_to_int(r["payment_frequency"], f"tranche[{name}].payment_frequency"),
            )
        )

    if not CASHFLOW_COLUMNS.issubset(cf_df.columns):
        raise ConfigurationError("Cashflows", f"Cashflows sheet must include columns: {sorted(CASHFLOW_COLUMNS)}")

    cashflows: List[PeriodCashflow] = []
    for _, r in cf_df.iterrows():
        period = _to_int(r["period"], "cashflows.period")
        cashflows.append(
            PeriodCashflow(
                period=period,
                interest=_to_decimal(r["interest"], f"cashflows[{period}].interest"),
                principal=_to_decimal(r["principal"], f"cashflows[{period}].principal"),
                losses=_to_decimal(r["losses"], f"cashflows[{period}].losses"),
            )
        )

    reinvestment = deal_kv.get("reinvestment_periods")
    reserve = deal_kv.get("reserve_account")

    return DealConfig(
        deal_name=str(deal_kv.get("deal_name", "Unnamed Deal")),
        collateral_balance=_to_decimal(deal_kv["collateral_balance"], "collateral_balance"),
        tranches=tuple(tranches),
        cashflows=tuple(cashflows),
        reserve_account=Decimal("0") if _is_blank(reserve) else _to_decimal(reserve, "reserve_account"),
        oc_trigger=_to_optional_decimal(deal_kv.get("oc_trigger"), "oc_trigger"),
        ic_trigger=_to_optional_decimal(deal_kv.get("ic_trigger"), "ic_trigger"),
        reinvestment_periods=0 if _is_blank(reinvestment) else _to_int(reinvestment, "reinvestment_periods"),
    )
