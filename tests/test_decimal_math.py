from decimal import Decimal, DivisionByZero, InvalidOperation

import pytest

from tranching_engine.decimal_math import D, annualize, irr, powd, safe_div


def test_d_keeps_float_literals_exact():
    assert D(0.04) == Decimal("0.04")
    assert D("1.5") == Decimal("1.5")
    assert D(3) == Decimal("3")


def test_safe_div_short_circuits_zero_denominator():
    assert safe_div(Decimal("5"), Decimal("0")) == 0
    assert safe_div(Decimal("5"), Decimal("2")) == Decimal("2.5")


def test_plain_division_by_zero_is_an_error():
    with pytest.raises(DivisionByZero):
        Decimal("1") / Decimal("0")


def test_powd_integral_and_fractional_exponents():
    assert powd(Decimal("1.01"), Decimal("4")) == Decimal("1.04060401")
    assert abs(powd(Decimal("4"), Decimal("0.5")) - Decimal("2")) < Decimal("1e-20")
    assert abs(powd(Decimal("1.21"), Decimal("1.5")) - Decimal("1.331")) < Decimal("1e-20")


def test_powd_rejects_negative_base_with_fractional_exponent():
    with pytest.raises(InvalidOperation):
        powd(Decimal("-1"), Decimal("0.5"))


def test_annualize():
    assert annualize(Decimal("0.01"), 4) == Decimal("0.04060401")
    assert annualize(Decimal("0"), 12) == 0


def test_irr_single_period():
    warnings = []
    r = irr([Decimal("-100"), Decimal("110")], warnings=warnings)
    assert abs(r - Decimal("0.1")) < Decimal("1e-8")
    assert warnings == []


def test_irr_level_coupon_bond_at_par():
    flows = [Decimal("-1000")] + [Decimal("20")] * 9 + [Decimal("1020")]
    r = irr(flows, guess=Decimal("0.05"))
    assert abs(r - Decimal("0.02")) < Decimal("1e-8")


def test_irr_without_sign_change_returns_zero_with_warning():
    warnings = []
    assert irr([Decimal("-100"), Decimal("0"), Decimal("0")], warnings=warnings) == 0
    assert len(warnings) == 1
    assert "sign change" in warnings[0]


def test_irr_needs_two_flows():
    warnings = []
    assert irr([Decimal("-100")], warnings=warnings) == 0
    assert warnings


def test_irr_non_convergence_returns_last_estimate():
    warnings = []
    r = irr([Decimal("-100"), Decimal("110")], max_iterations=1, warnings=warnings)
    assert r != 0
    assert "did not converge" in warnings[0]


def test_irr_rate_is_clamped():
    warnings = []
    r = irr([Decimal("-1"), Decimal("1000000")], max_iterations=3, warnings=warnings)
    assert r <= Decimal("10")
