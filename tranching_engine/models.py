from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

ZERO = Decimal("0")


@dataclass(frozen=True)
class TrancheSpec:
    name: str                  # "AAA", "BBB", "Equity"
    balance: Decimal           # par amount at issuance
    coupon_rate: Decimal       # annual, e.g. Decimal("0.05")
    seniority: int             # 1 = most senior
    is_fixed_rate: bool = True
    payment_frequency: int = 4 # payments per year


@dataclass(frozen=True)
class PeriodCashflow:
    period: int                # 1-indexed
    interest: Decimal
    principal: Decimal
    losses: Decimal = ZERO


@dataclass(frozen=True)
class DealConfig:
    deal_name: str
    collateral_balance: Decimal
    tranches: Tuple[TrancheSpec, ...]
    cashflows: Tuple[PeriodCashflow, ...]
    reserve_account: Decimal = ZERO        # starting (and target) reserve
    oc_trigger: Optional[Decimal] = None   # e.g. 1.20
    ic_trigger: Optional[Decimal] = None   # e.g. 1.05
    reinvestment_periods: int = 0          # 0 = no reinvestment window


@dataclass
class TrancheState:
    spec: TrancheSpec
    current_balance: Decimal
    total_interest_received: Decimal = ZERO
    total_principal_received: Decimal = ZERO
    loss_allocated: Decimal = ZERO
    cash_flows: List[Decimal] = field(default_factory=list)  # [0] = -par
    wal_numerator: Decimal = ZERO                            # sum(period * principal)

    @classmethod
    def at_issuance(cls, spec: TrancheSpec) -> "TrancheState":
        return cls(spec=spec, current_balance=spec.balance, cash_flows=[-spec.balance])

    @property
    def name(self) -> str:
        return self.spec.name

    def scheduled_coupon(self) -> Decimal:
        if self.current_balance <= 0:
            return ZERO
        return self.current_balance * self.spec.coupon_rate / self.spec.payment_frequency


@dataclass
class TranchePayment:
    tranche_name: str
    interest_paid: Decimal = ZERO
    principal_paid: Decimal = ZERO
    interest_shortfall: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.interest_paid + self.principal_paid


@dataclass
class WaterfallPeriod:
    period: int
    available_interest: Decimal
    available_principal: Decimal
    losses: Decimal
    tranche_payments: List[TranchePayment]
    reserve_balance: Decimal
    oc_test_result: Optional[bool]
    ic_test_result: Optional[bool]
    reserve_draw: Decimal = ZERO
    reserve_replenishment: Decimal = ZERO
    diverted_interest: Decimal = ZERO
    collateral_balance: Decimal = ZERO
    reinvesting: bool = False


@dataclass(frozen=True)
class TrancheResult:
    name: str
    seniority: int
    is_fixed_rate: bool
    original_balance: Decimal
    ending_balance: Decimal
    total_interest_received: Decimal
    total_principal_received: Decimal
    loss_allocated: Decimal
    yield_to_maturity: Decimal        # annualised IRR
    weighted_average_life: Decimal    # years
    credit_enhancement_pct: Decimal


@dataclass(frozen=True)
class SubordinationLevel:
    tranche_name: str
    subordination_pct: Decimal


@dataclass(frozen=True)
class CreditEnhancement:
    subordination: List[SubordinationLevel]
    overcollateralisation_initial: Decimal
    overcollateralisation_final: Decimal
    excess_spread: Decimal
    reserve_account_pct: Decimal


@dataclass(frozen=True)
class DealSummary:
    total_collateral: Decimal
    total_tranches: Decimal
    excess_collateral: Decimal
    weighted_avg_tranche_cost: Decimal
    total_losses: Decimal
    total_interest_distributed: Decimal
    total_principal_distributed: Decimal


@dataclass
class SimulationResult:
    # what the simulator hands to analytics; final states in seniority order
    tranche_states: List[TrancheState]
    waterfall_periods: List[WaterfallPeriod]
    collateral_balance: Decimal
    reserve_balance: Decimal


@dataclass(frozen=True)
class TranchingReport:
    deal_name: str
    tranche_results: List[TrancheResult]
    credit_enhancement: CreditEnhancement
    waterfall_periods: List[WaterfallPeriod]
    deal_summary: DealSummary
    warnings: List[str]
    methodology: str
    assumptions: Dict[str, object]
    metadata: Dict[str, str]

    def tranche(self, name: str) -> TrancheResult:
        for r in self.tranche_results:
            if r.name == name:
                return r
        raise KeyError(f"No tranche named {name!r}")
