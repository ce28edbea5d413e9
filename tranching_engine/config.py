from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from .errors import ConfigurationError
from .models import DealConfig, SubordinationLevel, TrancheSpec

logger = logging.getLogger("Tranching.Config")

_ENV_PREFIX = "TRANCHING_"


@dataclass(frozen=True)
class EngineSettings:
    """
    Numeric and logging knobs for a run.

    Every field can be overridden with a ``TRANCHING_<FIELD>`` environment
    variable, e.g. ``TRANCHING_IRR_MAX_ITERATIONS=100``.
    """

    decimal_precision: int = 28
    irr_guess: Decimal = Decimal("0.05")           # annual; divided by frequency per tranche
    irr_max_iterations: int = 50
    irr_tolerance: Decimal = Decimal("0.0000001")
    irr_rate_floor: Decimal = Decimal("-0.99")
    irr_rate_cap: Decimal = Decimal("10")
    oc_final_sentinel: Decimal = Decimal("999.99")  # final OC when notes are retired
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineSettings":
        defaults = cls()
        kwargs = {}
        for f in fields(cls):
            default = getattr(defaults, f.name)
            kwargs[f.name] = _get_env(f.name, default)
        return cls(**kwargs)


def _get_env(key: str, default: Any) -> Any:
    env_name = f"{_ENV_PREFIX}{key.upper()}"
    raw = os.environ.get(env_name)
    if raw is None or raw.strip() == "":
        return default
    try:
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, Decimal):
            return Decimal(raw.strip())
        return raw.strip()
    except (ValueError, InvalidOperation):
        logger.warning("Ignoring malformed %s=%r, using %s", env_name, raw, default)
        return default


@dataclass(frozen=True)
class CapitalStructure:
    tranches: List[TrancheSpec]

    def sorted_tranches(self) -> List[TrancheSpec]:
        # most senior first, whatever order the caller used
        return sorted(self.tranches, key=lambda t: t.seniority)

    def senior(self) -> TrancheSpec:
        return self.sorted_tranches()[0]

    def total_balance(self) -> Decimal:
        return sum((t.balance for t in self.tranches), Decimal("0"))

    def junior_balance(self, spec: TrancheSpec) -> Decimal:
        return sum((t.balance for t in self.tranches if t.seniority > spec.seniority), Decimal("0"))

    def subordination_pct(self, spec: TrancheSpec) -> Decimal:
        total = self.total_balance()
        if total == 0:
            return Decimal("0")
        return self.junior_balance(spec) / total

    def subordination(self) -> List[SubordinationLevel]:
        return [
            SubordinationLevel(tranche_name=t.name, subordination_pct=self.subordination_pct(t))
            for t in self.sorted_tranches()
        ]


def validate_deal(config: DealConfig) -> CapitalStructure:
    """
    Checks the invariants the waterfall relies on and returns the capital
    structure. Raises ConfigurationError on the first problem found.
    """
    if not config.tranches:
        raise ConfigurationError("tranches", "At least one tranche is required")

    if not config.cashflows:
        raise ConfigurationError("cashflows", "At least one period of cash flows is required")

    if config.collateral_balance <= 0:
        raise ConfigurationError("collateral_balance", "Collateral balance must be positive")

    if config.reserve_account < 0:
        raise ConfigurationError("reserve_account", "Reserve account cannot be negative")

    for trigger_name in ("oc_trigger", "ic_trigger"):
        trigger: Optional[Decimal] = getattr(config, trigger_name)
        if trigger is not None and trigger <= 0:
            raise ConfigurationError(trigger_name, "Trigger ratio must be positive")

    if config.reinvestment_periods < 0:
        raise ConfigurationError("reinvestment_periods", "Reinvestment periods cannot be negative")

    seen_seniority = {}
    for t in config.tranches:
        if t.balance <= 0:
            raise ConfigurationError(f"tranche[{t.name}].balance", "Tranche balance must be positive")
        if t.payment_frequency <= 0:
            raise ConfigurationError(f"tranche[{t.name}].payment_frequency", "Payment frequency must be > 0")
        if t.coupon_rate < 0:
            raise ConfigurationError(f"tranche[{t.name}].coupon_rate", "Coupon rate cannot be negative")
        if t.seniority in seen_seniority:
            raise ConfigurationError(
                f"tranche[{t.name}].seniority",
                f"Seniority {t.seniority} already used by tranche {seen_seniority[t.seniority]}",
            )
        seen_seniority[t.seniority] = t.name

    structure = CapitalStructure(tranches=list(config.tranches))
    if structure.total_balance() > config.collateral_balance:
        raise ConfigurationError("tranches", "Total tranche balance exceeds collateral balance")

    last_period = 0
    for cf in config.cashflows:
        if cf.period <= last_period:
            raise ConfigurationError(
                f"cashflows[{cf.period}].period", "Periods must be positive and strictly ascending"
            )
        last_period = cf.period
        for part in ("interest", "principal", "losses"):
            if getattr(cf, part) < 0:
                raise ConfigurationError(f"cashflows[{cf.period}].{part}", "Cash flow amounts cannot be negative")

    return structure
