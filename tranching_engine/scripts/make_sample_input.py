from __future__ import annotations

import pandas as pd


def build_sample_input(path: str = "sample_input.xlsx") -> str:
    deal = pd.DataFrame(
        [
            {"key": "deal_name", "value": "Sample CLO 2026-1"},
            {"key": "collateral_balance", "value": 1000000},
            {"key": "reserve_account", "value": 10000},
            {"key": "oc_trigger", "value": 1.10},
            {"key": "ic_trigger", "value": 1.05},
            {"key": "reinvestment_periods", "value": 2},
        ]
    )

    tranches = pd.DataFrame(
        [
            {"name": "AAA", "balance": 600000, "coupon_rate": 0.03, "seniority": 1, "is_fixed_rate": True, "payment_frequency": 4},
            {"name": "BBB", "balance": 200000, "coupon_rate": 0.06, "seniority": 2, "is_fixed_rate": True, "payment_frequency": 4},
            {"name": "Equity", "balance": 100000, "coupon_rate": 0.12, "seniority": 3, "is_fixed_rate": False, "payment_frequency": 4},
        ]
    )

    cashflows = pd.DataFrame(
        [
            {"period": p, "interest": 20000, "principal": 100000, "losses": 5000 if p > 4 else 0}
            for p in range(1, 11)
        ]
    )

    with pd.ExcelWriter(path) as xw:
        deal.to_excel(xw, sheet_name="Deal", index=False)
        tranches.to_excel(xw, sheet_name="Tranches", index=False)
        cashflows.to_excel(xw, sheet_name="Cashflows", index=False)

    return path


def main():
    path = build_sample_input()
    print(f"Created {path}")


if __name__ == "__main__":
    main()
