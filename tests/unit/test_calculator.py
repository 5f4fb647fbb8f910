"""Unit tests for payment plan quoting"""

import pytest
from decimal import Decimal, ROUND_HALF_UP
from installment_gateway.domain.calculator import calculate_payment_plans, select_plan
from installment_gateway.domain.exceptions import PlanValidationError
from installment_gateway.domain.models import PlanKind
from installment_gateway.utils.money import to_basis_points

RATE = Decimal("0.19")
CATALOG = [1, 3, 6, 12]


def quote(principal, upfront="0", **kwargs):
    kwargs.setdefault("durations", CATALOG)
    kwargs.setdefault("interest_rate", RATE)
    return calculate_payment_plans(Decimal(principal), "Jordan Avery", Decimal(upfront), **kwargs)


def test_twelve_month_plan_without_upfront():
    """1000 at 19% over 12 months"""
    plan = select_plan(quote("1000"), 12)

    assert plan.kind == PlanKind.INSTALLMENT
    assert plan.remaining_amount == Decimal("1000.00")
    assert plan.interest_amount == Decimal("190.00")
    assert plan.total_amount == Decimal("1190.00")
    assert plan.monthly_payment == Decimal("99.17")  # 1190 / 12 = 99.1666...


def test_upfront_reduces_interest_base():
    """Interest is charged on what remains after the upfront payment"""
    plan = select_plan(quote("1000", "200"), 6)

    assert plan.upfront_payment == Decimal("200.00")
    assert plan.remaining_amount == Decimal("800.00")
    assert plan.interest_amount == Decimal("152.00")
    assert plan.total_amount == Decimal("952.00")
    assert plan.monthly_payment == Decimal("158.67")


def test_full_payment_plan():
    plan = select_plan(quote("500"), 1)

    assert plan.kind == PlanKind.FULL
    assert plan.total_amount == Decimal("500.00")
    assert plan.interest_amount == Decimal("0.00")
    assert plan.monthly_payment == plan.total_amount


def test_full_payment_ignores_upfront_split():
    """Paying in full supersedes the partial-payment split"""
    plan = select_plan(quote("1000", "250"), 1)

    assert plan.total_amount == Decimal("1000.00")
    assert plan.upfront_payment == Decimal("0.00")
    assert plan.remaining_amount == Decimal("1000.00")


def test_one_plan_per_duration_in_ascending_order():
    response = quote("1000")

    assert [p.duration for p in response.available_plans] == [1, 3, 6, 12]
    assert response.interest_rate == "19%"
    assert response.remaining_amount == Decimal("1000.00")


def test_full_payment_always_offered():
    response = quote("1000", durations=[6, 3, 6])

    assert [p.duration for p in response.available_plans] == [1, 3, 6]


def test_configured_defaults_used():
    response = calculate_payment_plans(Decimal("1000"), "Jordan Avery")

    assert [p.duration for p in response.available_plans] == [1, 3, 6, 12]
    assert response.interest_rate == "19%"


def test_calculation_is_idempotent():
    assert quote("1234.56", "100") == quote("1234.56", "100")


@pytest.mark.parametrize("principal", ["0.01", "1", "99.99", "1000", "1234.56", "7777.77", "50000"])
@pytest.mark.parametrize("upfront_share", ["0", "0.1", "0.5", "0.9"])
def test_plan_invariants(principal, upfront_share):
    principal = Decimal(principal)
    upfront = (principal * Decimal(upfront_share)).quantize(Decimal("0.01"))
    if upfront >= principal:
        upfront = Decimal("0")
    response = quote(principal, upfront)

    for plan in response.available_plans:
        if plan.kind == PlanKind.FULL:
            assert plan.interest_amount == 0
            assert plan.total_amount == principal
            continue

        remaining = principal - upfront
        assert plan.remaining_amount == remaining
        assert plan.interest_amount == (remaining * RATE).quantize(Decimal("0.01"), ROUND_HALF_UP)
        assert plan.total_amount == remaining + plan.interest_amount
        # Each installment is rounded to the cent, so the drift is at most half a cent per month
        assert abs(plan.monthly_payment * plan.duration - plan.total_amount) <= Decimal("0.005") * plan.duration
        assert plan.monthly_payment >= Decimal("0.01")
        assert plan.total_amount - plan.monthly_payment * (plan.duration - 1) >= Decimal("0.01")


def test_durations_the_balance_cannot_fund_are_skipped():
    """0.15 at 19% is 0.18: 12 x 0.02 overshoots, so the last installment would be negative"""
    response = quote("0.15")

    assert [p.duration for p in response.available_plans] == [1, 3, 6]
    with pytest.raises(PlanValidationError):
        select_plan(response, 12)


def test_one_cent_only_offers_full_payment():
    response = quote("0.01")

    assert [p.duration for p in response.available_plans] == [1]
    assert response.available_plans[0].total_amount == Decimal("0.01")


def test_half_cent_rounds_up():
    """Half-up rounding: 100.05 * 0.10 = 10.005 -> 10.01"""
    plan = select_plan(quote("100.05", interest_rate=Decimal("0.10"), durations=[3]), 3)

    assert plan.interest_amount == Decimal("10.01")


def test_custom_rate_display():
    response = quote("1000", interest_rate=Decimal("0.125"))

    assert response.interest_rate == "12.5%"


@pytest.mark.parametrize(
    "principal,upfront,name",
    [
        ("0", "0", "Jordan"),  # Zero principal
        ("-10", "0", "Jordan"),  # Negative principal
        ("100", "100", "Jordan"),  # Upfront equals principal
        ("100", "150", "Jordan"),  # Upfront exceeds principal
        ("100", "-1", "Jordan"),  # Negative upfront
        ("100", "0", "   "),  # Blank name
        ("100.001", "0", "Jordan"),  # Sub-cent amount
    ],
)
def test_invalid_requests_rejected(principal, upfront, name):
    with pytest.raises(PlanValidationError):
        calculate_payment_plans(Decimal(principal), name, Decimal(upfront))


def test_rate_finer_than_basis_point_rejected():
    """Stored plans keep the rate in whole basis points"""
    with pytest.raises(PlanValidationError):
        quote("1000", interest_rate=Decimal("0.123456"))


def test_basis_point_conversion():
    assert to_basis_points(Decimal("0.19")) == 1900
    assert to_basis_points(Decimal("0.1234")) == 1234
    assert to_basis_points(Decimal("0.00005")) == 1


def test_invalid_duration_catalog():
    with pytest.raises(PlanValidationError):
        quote("1000", durations=[0, 3])


def test_select_missing_duration():
    with pytest.raises(PlanValidationError):
        select_plan(quote("1000"), 24)
