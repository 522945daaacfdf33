"""
Tests for the claim admissibility engine.

Validates:
- Rule order: the first failing rule decides the rejection
- Gate table: travel is unconditional, handset needs eligibility
- Handset eligibility predicate (policy, interval, allowance)
- Unknown claim types are configuration errors
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from backoffice_engines.admissibility import (
    ADMISSIBILITY_RULES,
    HANDSET_NOT_POSSIBLE,
    Eligibility,
    Gate,
    RejectionCode,
    add_months,
    can_submit,
    evaluate_handset_eligibility,
    gate_for,
    parse_claim_type,
)
from backoffice_kernel.exceptions import UnknownClaimTypeError
from backoffice_modules.claims.models import Claim, ClaimRequest, ClaimType
from backoffice_modules.policy.models import HandsetPolicy

EMPLOYEE_ID = uuid4()


def _request(amount, claim_type=ClaimType.MEDICINE):
    return ClaimRequest(EMPLOYEE_ID, claim_type, Decimal(amount))


def _handset_claim(claim_date):
    return Claim(
        id=uuid4(),
        employee_id=EMPLOYEE_ID,
        designation_id=uuid4(),
        claim_type=ClaimType.MOBILE_HANDSET,
        claim_date=claim_date,
        claim_amount=Decimal("12000"),
    )


class TestBalanceGate:

    def test_claim_above_balance_is_rejected(self):
        decision = can_submit(_request("6000"), Decimal("5000"))
        assert not decision.admit
        assert decision.code is RejectionCode.BALANCE_WOULD_GO_NEGATIVE
        assert "exceeds available balance" in decision.reason

    def test_claim_equal_to_balance_is_admitted(self):
        decision = can_submit(_request("5000"), Decimal("5000"))
        assert decision.admit
        assert decision.code is None

    def test_zero_balance_is_exhausted(self):
        decision = can_submit(_request("1"), Decimal("0"))
        assert decision.code is RejectionCode.BALANCE_EXHAUSTED
        assert decision.rule == "balance_exhausted"

    def test_negative_balance_is_exhausted(self):
        decision = can_submit(_request("1"), Decimal("-50"))
        assert decision.code is RejectionCode.BALANCE_EXHAUSTED

    def test_first_failing_rule_wins(self):
        # Both exhausted and would-go-negative fail; exhausted comes first.
        decision = can_submit(_request("100"), Decimal("0"))
        assert decision.rule == ADMISSIBILITY_RULES[0].name

    def test_hospital_uses_balance_gate(self):
        assert gate_for(ClaimType.HOSPITAL) is Gate.BALANCE
        assert not can_submit(_request("10", ClaimType.HOSPITAL), Decimal("5")).admit


class TestUnconditionalGate:

    def test_travel_is_always_admitted(self):
        decision = can_submit(_request("99999", ClaimType.TRAVEL), Decimal("0"))
        assert decision.admit


class TestAllowanceGate:

    def test_ineligible_reason_is_surfaced(self):
        eligibility = Eligibility(False, "must wait 24 months")
        decision = can_submit(
            _request("5000", ClaimType.MOBILE_HANDSET), Decimal("15000"), eligibility,
        )
        assert not decision.admit
        assert decision.code is RejectionCode.INELIGIBLE_FOR_ALLOWANCE
        assert decision.reason == "must wait 24 months"

    def test_missing_predicate_counts_as_ineligible(self):
        decision = can_submit(_request("5000", ClaimType.MOBILE_HANDSET), Decimal("15000"))
        assert decision.reason == HANDSET_NOT_POSSIBLE

    def test_eligible_handset_claim_is_admitted(self):
        decision = can_submit(
            _request("5000", ClaimType.MOBILE_HANDSET), Decimal("15000"), Eligibility(True),
        )
        assert decision.admit

    def test_balance_rules_apply_before_eligibility(self):
        decision = can_submit(
            _request("5000", ClaimType.MOBILE_HANDSET), Decimal("0"), Eligibility(True),
        )
        assert decision.code is RejectionCode.BALANCE_EXHAUSTED


class TestClaimTypes:

    def test_form_value_is_parsed(self):
        assert parse_claim_type("Mobile Handset") is ClaimType.MOBILE_HANDSET

    def test_unknown_claim_type_raises(self):
        with pytest.raises(UnknownClaimTypeError):
            gate_for("Dental")


class TestHandsetEligibility:
    AS_OF = date(2024, 6, 15)
    POLICY = HandsetPolicy(id=uuid4(), designation_id=uuid4(), amount=Decimal("15000"))

    def test_no_policy(self):
        result = evaluate_handset_eligibility(None, [], Decimal("1000"), Decimal("0"), self.AS_OF)
        assert not result.eligible
        assert "No mobile handset policy" in result.reason

    def test_first_claim_is_possible(self):
        result = evaluate_handset_eligibility(
            self.POLICY, [], Decimal("12000"), Decimal("15000"), self.AS_OF,
        )
        assert result == Eligibility(True)

    def test_recent_claim_blocks_until_interval_elapses(self):
        result = evaluate_handset_eligibility(
            self.POLICY, [_handset_claim(date(2023, 1, 10))],
            Decimal("1000"), Decimal("15000"), self.AS_OF,
        )
        assert not result.eligible
        assert result.next_eligible_date == date(2025, 1, 10)
        assert "24 months" in result.reason

    def test_interval_elapsed(self):
        result = evaluate_handset_eligibility(
            self.POLICY, [_handset_claim(date(2022, 6, 15))],
            Decimal("1000"), Decimal("15000"), self.AS_OF,
        )
        assert result.eligible

    def test_amount_above_allowance(self):
        result = evaluate_handset_eligibility(
            self.POLICY, [], Decimal("16000"), Decimal("15000"), self.AS_OF,
        )
        assert not result.eligible
        assert "exceeds remaining allowance" in result.reason

    def test_custom_interval(self):
        result = evaluate_handset_eligibility(
            self.POLICY, [_handset_claim(date(2023, 1, 10))],
            Decimal("1000"), Decimal("15000"), self.AS_OF, min_interval_months=12,
        )
        assert result.eligible


class TestAddMonths:

    def test_clamps_to_month_end(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2022, 2, 28), 24) == date(2024, 2, 28)

    def test_crosses_year(self):
        assert add_months(date(2023, 11, 5), 3) == date(2024, 2, 5)
