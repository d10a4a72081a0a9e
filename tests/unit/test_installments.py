"""Unit tests for installment schedule generation"""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from cashloan_gateway.domain.exceptions import InvalidLoanTerms
from cashloan_gateway.domain.installments import generate_installment_schedule
from cashloan_gateway.domain.models import Frequency, InstallmentStatus, LoanTerms

ISSUED_AT = datetime(2024, 1, 1, 18, 45, tzinfo=timezone.utc)


def make_terms(**overrides) -> LoanTerms:
    values = {
        "principal": Decimal("1000"),
        "interest_rate": Decimal("20"),
        "number_of_installments": 4,
        "frequency": Frequency.WEEKLY,
        "issued_at": ISSUED_AT,
    }
    values.update(overrides)
    return LoanTerms(**values)


def test_weekly_schedule_equal_split():
    """1000 at 20% in 4 weekly installments → 4 x 300.00"""
    installments = generate_installment_schedule(make_terms())

    assert len(installments) == 4
    assert all(inst.amount == Decimal("300.00") for inst in installments)
    assert sum(inst.amount for inst in installments) == Decimal("1200.00")


def test_weekly_due_dates_start_one_period_after_issue():
    """Due at +7, +14, +21, +28 days with the time of day dropped"""
    installments = generate_installment_schedule(make_terms())

    issue_day = ISSUED_AT.date()
    assert [inst.due_date for inst in installments] == [
        issue_day + timedelta(days=7),
        issue_day + timedelta(days=14),
        issue_day + timedelta(days=21),
        issue_day + timedelta(days=28),
    ]
    assert all(isinstance(inst.due_date, date) and not isinstance(inst.due_date, datetime) for inst in installments)


def test_biweekly_due_dates():
    """Test biweekly installments fall 14 days apart"""
    installments = generate_installment_schedule(make_terms(frequency=Frequency.BIWEEKLY, number_of_installments=3))

    assert [inst.due_date for inst in installments] == [
        date(2024, 1, 15),
        date(2024, 1, 29),
        date(2024, 2, 12),
    ]


def test_monthly_due_dates_clamp_to_month_end():
    """Jan 31 + 1 month lands on Feb 29 (leap year); later months step from there"""
    issued = datetime(2024, 1, 31, 9, 0, tzinfo=timezone.utc)
    installments = generate_installment_schedule(
        make_terms(frequency=Frequency.MONTHLY, number_of_installments=3, issued_at=issued)
    )

    assert [inst.due_date for inst in installments] == [
        date(2024, 2, 29),
        date(2024, 3, 29),
        date(2024, 4, 29),
    ]


def test_frequency_accepts_plain_string():
    """Test frequency given as its string value"""
    installments = generate_installment_schedule(make_terms(frequency="monthly", number_of_installments=2))

    assert installments[0].due_date == date(2024, 2, 1)
    assert installments[1].due_date == date(2024, 3, 1)


def test_rounding_drift_is_not_reconciled():
    """100 in 3 installments → 3 x 33.33, the missing cent is accepted"""
    installments = generate_installment_schedule(
        make_terms(principal=Decimal("100"), interest_rate=Decimal("0"), number_of_installments=3)
    )

    assert [inst.amount for inst in installments] == [Decimal("33.33")] * 3
    assert sum(inst.amount for inst in installments) == Decimal("99.99")


def test_rounding_half_up():
    """200 at 0% in 3 → 66.666... rounds to 66.67"""
    installments = generate_installment_schedule(
        make_terms(principal=Decimal("200"), interest_rate=Decimal("0"), number_of_installments=3)
    )

    assert installments[0].amount == Decimal("66.67")


@pytest.mark.parametrize("count", [1, 2, 5, 7, 12, 24])
@pytest.mark.parametrize("frequency", list(Frequency))
def test_sequences_and_dates_are_ordered(count, frequency):
    """Test sequences run 1..N with strictly increasing due dates"""
    installments = generate_installment_schedule(
        make_terms(
            principal=Decimal("1234.56"),
            interest_rate=Decimal("17.5"),
            number_of_installments=count,
            frequency=frequency,
        )
    )

    assert [inst.sequence for inst in installments] == list(range(1, count + 1))
    assert all(a.due_date < b.due_date for a, b in zip(installments, installments[1:]))

    total = Decimal("1234.56") * (1 + Decimal("17.5") / 100)
    drift = abs(sum(inst.amount for inst in installments) - total)
    assert drift <= Decimal("0.01") * count


def test_installments_start_pending():
    """Test new installments are pending and unpaid"""
    installments = generate_installment_schedule(make_terms())

    assert all(inst.status == InstallmentStatus.PENDING for inst in installments)


@pytest.mark.parametrize(
    "overrides",
    [
        {"number_of_installments": 0},
        {"number_of_installments": -2},
        {"principal": Decimal("0")},
        {"principal": Decimal("-100")},
        {"interest_rate": Decimal("-1")},
        {"frequency": "daily"},
    ],
)
def test_invalid_terms_rejected(overrides):
    """Test invalid loan terms raise InvalidLoanTerms"""
    with pytest.raises(InvalidLoanTerms):
        generate_installment_schedule(make_terms(**overrides))


def test_zero_interest_is_allowed():
    """Test zero interest splits the principal evenly"""
    installments = generate_installment_schedule(make_terms(interest_rate=Decimal("0")))

    assert all(inst.amount == Decimal("250.00") for inst in installments)
