"""
Tests for the entitlement balance calculator.

Validates:
- Entitlement formula (fixed, salary-derived, whichever is higher)
- Accumulation windows and fiscal year start
- Only same-type claims in the window are consumed
- Missing policy yields zero balance with an explicit reason
- Back-dated claims are bound by every window containing their date
- Purity: identical inputs give identical results
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from backoffice_engines.entitlement import (
    NO_POLICY_REASON,
    accumulation_window,
    compute_balance,
    compute_claim_balance,
    compute_entitlement_amount,
    sum_claims_in_window,
)
from backoffice_modules.claims.models import BalanceAdjustment, Claim, ClaimType
from backoffice_modules.hr.models import Employee
from backoffice_modules.policy.models import (
    AmountType,
    HandsetPolicy,
    ReimbursementPolicy,
    ReimbursementPolicyType,
)

AS_OF = date(2024, 6, 15)

EMPLOYEE = Employee(
    id=uuid4(),
    emp_code="E-001",
    name="Test Employee",
    designation_id=uuid4(),
    basic_salary=Decimal("30000"),
    gross_salary=Decimal("50000"),
    joining_date=date(2020, 1, 1),
)


def _policy(**overrides):
    values = dict(
        id=uuid4(),
        designation_id=EMPLOYEE.designation_id,
        policy_type=ReimbursementPolicyType.MEDICAL,
        amount_type=AmountType.FIXED,
        fixed_amount=Decimal("5000"),
        salary_percentage=Decimal("0"),
        use_whichever_is_higher=False,
    )
    values.update(overrides)
    return ReimbursementPolicy(**values)


def _claim(amount, claim_date=date(2024, 3, 1), claim_type=ClaimType.MEDICINE, **kwargs):
    return Claim(
        id=kwargs.pop("id", uuid4()),
        employee_id=EMPLOYEE.id,
        designation_id=EMPLOYEE.designation_id,
        claim_type=claim_type,
        claim_date=claim_date,
        claim_amount=Decimal(amount),
        **kwargs,
    )


class TestEntitlementAmount:

    def test_fixed_amount(self):
        assert compute_entitlement_amount(_policy(), EMPLOYEE) == Decimal("5000")

    def test_fixed_ignores_salary_when_not_whichever_higher(self):
        policy = _policy(
            amount_type=AmountType.BASIC_SALARY,
            salary_percentage=Decimal("50"),
            use_whichever_is_higher=False,
        )
        assert compute_entitlement_amount(policy, EMPLOYEE) == Decimal("5000")

    def test_whichever_is_higher_takes_salary_share(self):
        policy = _policy(
            amount_type=AmountType.BASIC_SALARY,
            salary_percentage=Decimal("20"),
            use_whichever_is_higher=True,
        )
        assert compute_entitlement_amount(policy, EMPLOYEE) == Decimal("6000")

    def test_whichever_is_higher_keeps_fixed_floor(self):
        policy = _policy(
            amount_type=AmountType.BASIC_SALARY,
            salary_percentage=Decimal("10"),
            use_whichever_is_higher=True,
        )
        assert compute_entitlement_amount(policy, EMPLOYEE) == Decimal("5000")

    def test_gross_salary_base(self):
        policy = _policy(
            amount_type=AmountType.GROSS_SALARY,
            salary_percentage=Decimal("20"),
            use_whichever_is_higher=True,
        )
        assert compute_entitlement_amount(policy, EMPLOYEE) == Decimal("10000")

    def test_handset_policy_grants_flat_amount(self):
        handset = HandsetPolicy(id=uuid4(), designation_id=EMPLOYEE.designation_id, amount=Decimal("15000"))
        assert compute_entitlement_amount(handset, EMPLOYEE) == Decimal("15000")


class TestAccumulationWindow:

    def test_current_calendar_year(self):
        assert accumulation_window(AS_OF, None) == (date(2024, 1, 1), date(2024, 12, 31))

    def test_accumulable_years_extend_back(self):
        assert accumulation_window(AS_OF, 2) == (date(2022, 1, 1), date(2024, 12, 31))

    def test_fiscal_year_start_month(self):
        assert accumulation_window(AS_OF, 0, 7) == (date(2023, 7, 1), date(2024, 6, 30))
        assert accumulation_window(date(2024, 7, 1), 0, 7) == (date(2024, 7, 1), date(2025, 6, 30))

    def test_invalid_fiscal_month(self):
        with pytest.raises(ValueError):
            accumulation_window(AS_OF, 0, 13)

    def test_negative_years(self):
        with pytest.raises(ValueError):
            accumulation_window(AS_OF, -1)


class TestComputeBalance:

    def test_no_prior_claims_gives_full_entitlement(self):
        result = compute_balance(_policy(), EMPLOYEE, [], AS_OF, ClaimType.MEDICINE)
        assert result.balance == Decimal("5000")
        assert result.used_this_period == Decimal("0")
        assert result.reason is None

    def test_claims_are_subtracted(self):
        claims = [_claim("1200"), _claim("800", date(2024, 5, 1))]
        result = compute_balance(_policy(), EMPLOYEE, claims, AS_OF, ClaimType.MEDICINE)
        assert result.used_this_period == Decimal("2000")
        assert result.balance == Decimal("3000")

    def test_exhausted_balance_is_zero(self):
        result = compute_balance(
            _policy(), EMPLOYEE, [_claim("5000")], AS_OF, ClaimType.MEDICINE,
        )
        assert result.balance == Decimal("0")
        assert result.reason is None

    def test_other_claim_types_are_ignored(self):
        claims = [_claim("4000", claim_type=ClaimType.HOSPITAL)]
        result = compute_balance(_policy(), EMPLOYEE, claims, AS_OF, ClaimType.MEDICINE)
        assert result.balance == Decimal("5000")

    def test_claims_outside_window_are_ignored(self):
        claims = [
            _claim("4000", date(2023, 12, 31)),
            _claim("700", date(2024, 6, 20)),
        ]
        result = compute_balance(_policy(), EMPLOYEE, claims, AS_OF, ClaimType.MEDICINE)
        assert result.used_this_period == Decimal("0")
        assert result.balance == Decimal("5000")

    def test_accumulation_multiplies_entitlement(self):
        policy = _policy(accumulable_years=2)
        claims = [_claim("4000", date(2022, 8, 1))]
        result = compute_balance(policy, EMPLOYEE, claims, AS_OF, ClaimType.MEDICINE)
        assert result.accrued_years == 3
        assert result.entitlement == Decimal("15000")
        assert result.balance == Decimal("11000")

    def test_years_before_joining_do_not_accrue(self):
        recent_joiner = Employee(
            id=EMPLOYEE.id,
            emp_code="E-002",
            name="Recent Joiner",
            designation_id=EMPLOYEE.designation_id,
            basic_salary=Decimal("30000"),
            gross_salary=Decimal("50000"),
            joining_date=date(2023, 5, 1),
        )
        result = compute_balance(
            _policy(accumulable_years=2), recent_joiner, [], AS_OF, ClaimType.MEDICINE,
        )
        assert result.accrued_years == 2
        assert result.balance == Decimal("10000")

    def test_adjustments_add_to_entitlement(self):
        adjustments = [
            BalanceAdjustment(
                id=uuid4(),
                employee_id=EMPLOYEE.id,
                claim_type=ClaimType.MEDICINE,
                amount=Decimal("1500"),
                effective_date=date(2024, 2, 1),
            ),
            BalanceAdjustment(
                id=uuid4(),
                employee_id=EMPLOYEE.id,
                claim_type=ClaimType.HOSPITAL,
                amount=Decimal("9999"),
                effective_date=date(2024, 2, 1),
            ),
        ]
        result = compute_balance(
            _policy(), EMPLOYEE, [], AS_OF, ClaimType.MEDICINE, adjustments=adjustments,
        )
        assert result.entitlement == Decimal("6500")
        assert result.balance == Decimal("6500")

    def test_missing_policy_reports_reason(self):
        result = compute_balance(None, EMPLOYEE, [_claim("300")], AS_OF, ClaimType.MEDICINE)
        assert result.balance == Decimal("0")
        assert result.reason == NO_POLICY_REASON
        assert result.used_this_period == Decimal("300")

    def test_over_consumption_is_negative(self):
        result = compute_balance(
            _policy(), EMPLOYEE, [_claim("6000")], AS_OF, ClaimType.MEDICINE,
        )
        assert result.balance == Decimal("-1000")

    def test_exclude_claim_being_edited(self):
        edited_id = uuid4()
        claims = [_claim("3000", id=edited_id), _claim("1000")]
        result = compute_balance(
            _policy(), EMPLOYEE, claims, AS_OF, ClaimType.MEDICINE,
            exclude_claim_id=edited_id,
        )
        assert result.balance == Decimal("4000")

    def test_pending_claims_can_be_excluded(self):
        claims = [_claim("1000", is_approved=True), _claim("2000")]
        result = compute_balance(
            _policy(), EMPLOYEE, claims, AS_OF, ClaimType.MEDICINE, count_pending=False,
        )
        assert result.balance == Decimal("4000")

    def test_repeated_calls_are_identical(self):
        claims = (_claim("1200"),)
        first = compute_balance(_policy(), EMPLOYEE, claims, AS_OF, ClaimType.MEDICINE)
        second = compute_balance(_policy(), EMPLOYEE, claims, AS_OF, ClaimType.MEDICINE)
        assert first == second


class TestComputeClaimBalance:

    def test_current_year_matches_compute_balance(self):
        claims = (_claim("1200"),)
        expected = compute_balance(_policy(), EMPLOYEE, claims, AS_OF, ClaimType.MEDICINE)
        result = compute_claim_balance(
            _policy(), EMPLOYEE, claims, date(2024, 2, 1), AS_OF, ClaimType.MEDICINE,
        )
        assert result == expected

    def test_past_year_counts_the_whole_year(self):
        claims = (_claim("4500", date(2023, 12, 30)),)
        result = compute_claim_balance(
            _policy(), EMPLOYEE, claims, date(2023, 1, 10), AS_OF, ClaimType.MEDICINE,
        )
        assert result.balance == Decimal("500")
        assert (result.window_start, result.window_end) == (date(2023, 1, 1), date(2023, 12, 31))

    def test_accumulable_policy_takes_tightest_window(self):
        policy = _policy(accumulable_years=1)
        claims = (_claim("6000", date(2023, 5, 1)), _claim("4000", date(2024, 2, 1)))
        result = compute_claim_balance(
            policy, EMPLOYEE, claims, date(2023, 2, 1), AS_OF, ClaimType.MEDICINE,
        )
        # 2022-2023 window: 10000 - 6000; 2023-2024 window: 10000 - 10000
        assert result.balance == Decimal("0")
        assert result.window_start == date(2023, 1, 1)

    def test_windows_stop_at_the_current_year(self):
        policy = _policy(accumulable_years=3)
        result = compute_claim_balance(
            policy, EMPLOYEE, (), date(2024, 1, 5), AS_OF, ClaimType.MEDICINE,
        )
        assert result.window_end == date(2024, 12, 31)
        assert result.balance == Decimal("20000")

    def test_missing_policy(self):
        result = compute_claim_balance(
            None, EMPLOYEE, (), date(2023, 5, 1), AS_OF, ClaimType.MEDICINE,
        )
        assert result.balance == Decimal("0")
        assert result.reason == NO_POLICY_REASON


class TestSumClaimsInWindow:

    def test_window_bounds_are_inclusive(self):
        claims = [_claim("100", date(2024, 1, 1)), _claim("200", AS_OF)]
        total = sum_claims_in_window(claims, ClaimType.MEDICINE, date(2024, 1, 1), AS_OF)
        assert total == Decimal("300")
