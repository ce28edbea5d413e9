from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional, Sequence, Union

logger = logging.getLogger("Tranching.Numeric")

Number = Union[Decimal, int, str, float]

ZERO = Decimal("0")
ONE = Decimal("1")


def D(value: Number) -> Decimal:
    # floats go through str() so 0.04 stays 0.04 rather than its binary expansion
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def safe_div(n: Decimal, d: Decimal) -> Decimal:
    return n / d if d != 0 else ZERO


def powd(base: Decimal, exponent: Decimal) -> Decimal:
    """
    Real-exponent power. Integral exponents are exact; anything else goes
    through exp(exponent * ln(base)).
    """
    if exponent == exponent.to_integral_value():
        return base ** int(exponent)
    return (base.ln() * exponent).exp()


def annualize(periodic_rate: Decimal, periods_per_year: Number) -> Decimal:
    """(1 + r)^n - 1"""
    return powd(ONE + periodic_rate, D(periods_per_year)) - ONE


def _npv_and_derivative(cash_flows: Sequence[Decimal], rate: Decimal):
    one_plus_r = ONE + rate
    npv = ZERO
    dnpv = ZERO
    discount = ONE
    for t, cf in enumerate(cash_flows):
        if t > 0:
            discount *= one_plus_r
        npv += cf / discount
        if t > 0:
            dnpv -= t * cf / (discount * one_plus_r)
    return npv, dnpv


def irr(
    cash_flows: Sequence[Decimal],
    guess: Decimal = Decimal("0.05"),
    max_iterations: int = 50,
    tolerance: Decimal = Decimal("0.0000001"),
    rate_floor: Decimal = Decimal("-0.99"),
    rate_cap: Decimal = Decimal("10"),
    warnings: Optional[List[str]] = None,
) -> Decimal:
    """
    Periodic internal rate of return by Newton-Raphson.

    Solves sum(cf_t / (1 + r)^t) = 0 starting from ``guess``. The rate is
    clamped to [rate_floor, rate_cap] after every step. Problems never
    raise: a flat stream with no sign change returns zero, a zero derivative
    or an exhausted iteration budget returns the last estimate. In every
    such case a message is appended to ``warnings`` (if given) and logged.
    """

    def _warn(msg: str) -> None:
        logger.warning(msg)
        if warnings is not None:
            warnings.append(msg)

    if len(cash_flows) < 2:
        _warn("IRR needs at least two cash flows, using 0")
        return ZERO

    has_positive = any(cf > 0 for cf in cash_flows)
    has_negative = any(cf < 0 for cf in cash_flows)
    if not (has_positive and has_negative):
        _warn("IRR cash flows have no sign change, using 0")
        return ZERO

    rate = guess
    for iteration in range(max_iterations):
        npv, dnpv = _npv_and_derivative(cash_flows, rate)

        if abs(npv) < tolerance:
            logger.debug("IRR converged to %s after %d iterations", rate, iteration)
            return rate

        if dnpv == 0:
            _warn(f"IRR derivative zero at iteration {iteration}, using last estimate")
            return rate

        rate -= npv / dnpv

        if rate < rate_floor:
            rate = rate_floor
        elif rate > rate_cap:
            rate = rate_cap

    _warn(f"IRR did not converge within {max_iterations} iterations")
    return rate
