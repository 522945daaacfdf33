"""
Reimbursement Claims Service (``backoffice_modules.claims.service``).

Responsibility
--------------
Orchestrates claim intake for Medicine, Hospital, Mobile Handset and Travel
claims: balance lookup, admissibility, persistence, approval and the
administrative opening-balance screen.  All decisions are delegated to the
pure engines (``policy_lookup``, ``entitlement``, ``admissibility``).

Architecture position
---------------------
**Modules layer** -- thin ERP glue.  ``ClaimService`` is the sole public
entry point for claim writes.

Invariants enforced
-------------------
* Each public write method owns the transaction boundary
  (``commit`` on success, ``rollback`` on rejection or exception).
* The employee row is locked (``SELECT ... FOR UPDATE``) before the balance
  is recomputed, so two submissions for one employee serialize and the
  second sees the first.
* The balance is recomputed from persisted claims on every call; the
  ``balance`` stored on a claim is a record of the decision, never an input.
* Every persisted non-travel claim satisfies ``after_balance >= 0``.

Failure modes
-------------
* Admissibility rejection -> ``ClaimSubmission`` with ``claim is None``;
  nothing persisted.
* ``EmployeeNotFoundError``, ``ClaimNotFoundError``,
  ``ClaimAlreadyApprovedError``, ``InvalidClaimError``,
  ``UnknownClaimTypeError``, ``PolicyNotFoundError`` (travel lookups).

Usage::

    service = ClaimService(session, clock=clock)
    submission = service.submit_claim(
        ClaimRequest(employee_id, ClaimType.MEDICINE, Decimal("1500")),
        actor_id=actor_id,
    )
    if not submission.admitted:
        show(submission.decision.reason)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice_engines.admissibility import (
    AdmissibilityDecision,
    Eligibility,
    Gate,
    can_submit,
    evaluate_handset_eligibility,
    gate_for,
    parse_claim_type,
)
from backoffice_engines.entitlement import (
    BalanceResult,
    compute_balance,
    compute_claim_balance,
)
from backoffice_engines.policy_lookup import (
    resolve_handset_policy,
    resolve_reimbursement_policy,
    resolve_travel_policy,
)
from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.exceptions import (
    ClaimAlreadyApprovedError,
    ClaimNotFoundError,
    EmployeeNotFoundError,
    InvalidClaimError,
    PolicyNotApplicableError,
    PolicyNotFoundError,
)
from backoffice_kernel.logging_config import LogContext, get_logger
from backoffice_modules.claims.config import ClaimsConfig
from backoffice_modules.claims.models import (
    BalanceAdjustment,
    Claim,
    ClaimRequest,
    ClaimType,
    TravelClaim,
)
from backoffice_modules.claims.orm import (
    BalanceAdjustmentModel,
    ClaimModel,
    TravelClaimModel,
)
from backoffice_modules.hr.models import Designation, Employee
from backoffice_modules.hr.orm import EmployeeModel
from backoffice_modules.policy.models import (
    Beneficiary,
    HandsetPolicy,
    ReimbursementPolicy,
    TravelPolicy,
)
from backoffice_modules.policy.service import PolicyService

logger = get_logger("modules.claims.service")

NOT_BALANCE_GATED_REASON = "travel claims are not balance-gated"

# Default for edit_claim arguments where None is a meaningful new value.
_KEEP: Any = object()


@dataclass(frozen=True)
class ClaimSubmission:
    """Outcome of a claim submission or edit."""
    decision: AdmissibilityDecision
    balance: BalanceResult
    claim: Claim | None = None
    eligibility: Eligibility | None = None

    @property
    def admitted(self) -> bool:
        return self.decision.admit


class ClaimService:
    """
    Orchestrates reimbursement claims through the entitlement engines.

    Contract
    --------
    * ``submit_claim`` / ``edit_claim`` never raise for an inadmissible
      claim; they return a ``ClaimSubmission`` whose ``decision`` carries
      the rejection code and message.
    * ``get_balance`` is a pure read: calling it twice without intervening
      writes returns equal results.

    Transaction boundary: this service commits on success, rolls back on
    failure.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ClaimsConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or ClaimsConfig.with_defaults()
        self._policies = PolicyService(session)

    # =========================================================================
    # Internal reads
    # =========================================================================

    def _lock_employee(self, employee_id: UUID) -> EmployeeModel:
        orm = self._session.execute(
            select(EmployeeModel)
            .where(EmployeeModel.id == employee_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if orm is None:
            raise EmployeeNotFoundError(employee_id)
        return orm

    def _get_employee(self, employee_id: UUID) -> EmployeeModel:
        orm = self._session.get(EmployeeModel, employee_id)
        if orm is None:
            raise EmployeeNotFoundError(employee_id)
        return orm

    def _load_claims(self, employee_id: UUID, claim_type: ClaimType | None = None) -> tuple[Claim, ...]:
        query = self._session.query(ClaimModel).filter(ClaimModel.employee_id == employee_id)
        if claim_type is not None:
            query = query.filter(ClaimModel.claim_type == claim_type.value)
        rows = query.order_by(ClaimModel.claim_date, ClaimModel.created_at).all()
        return tuple(row.to_dto() for row in rows)

    def _load_adjustments(self, employee_id: UUID, claim_type: ClaimType) -> tuple[BalanceAdjustment, ...]:
        rows = (
            self._session.query(BalanceAdjustmentModel)
            .filter(
                BalanceAdjustmentModel.employee_id == employee_id,
                BalanceAdjustmentModel.claim_type == claim_type.value,
            )
            .all()
        )
        return tuple(row.to_dto() for row in rows)

    def _resolve_policy(
        self,
        designation: Designation,
        claim_type: ClaimType,
        beneficiary: Beneficiary | None,
    ) -> tuple[ReimbursementPolicy | HandsetPolicy | None, str | None]:
        """Policy for the claim, or ``None`` with the reason it is missing."""
        gate = gate_for(claim_type)
        if gate is Gate.UNCONDITIONAL:
            return None, NOT_BALANCE_GATED_REASON
        try:
            if claim_type is ClaimType.MOBILE_HANDSET:
                policies = self._policies.load_handset_policies(designation.id)
                return resolve_handset_policy(policies, designation), None
            policies = self._policies.load_reimbursement_policies(designation.id)
            return resolve_reimbursement_policy(
                policies, designation.id, claim_type, beneficiary,
            ), None
        except PolicyNotApplicableError as exc:
            logger.warning("claim_policy_not_applicable", extra={
                "designation_id": str(designation.id),
                "claim_type": claim_type.value,
                "beneficiary": exc.beneficiary,
            })
            return None, f"policy not applicable to {exc.beneficiary}"
        except PolicyNotFoundError:
            logger.info("claim_policy_not_found", extra={
                "designation_id": str(designation.id),
                "claim_type": claim_type.value,
            })
            return None, None

    def _balance_for(
        self,
        employee_orm: EmployeeModel,
        claim_type: ClaimType,
        beneficiary: Beneficiary | None,
        as_of: date,
        exclude_claim_id: UUID | None = None,
        claim_date: date | None = None,
    ) -> tuple[BalanceResult, ReimbursementPolicy | HandsetPolicy | None, tuple[Claim, ...]]:
        """Balance as of ``as_of``, or the one a claim dated ``claim_date`` is bound by."""
        employee: Employee = employee_orm.to_dto()
        designation: Designation = employee_orm.designation.to_dto()
        policy, missing_reason = self._resolve_policy(designation, claim_type, beneficiary)
        claims = self._load_claims(employee.id, claim_type)
        options = dict(
            adjustments=self._load_adjustments(employee.id, claim_type),
            fiscal_year_start_month=self._config.fiscal_year_start_month,
            count_pending=self._config.count_pending_claims,
            exclude_claim_id=exclude_claim_id,
        )

        if claim_date is None:
            result = compute_balance(policy, employee, claims, as_of, claim_type, **options)
        else:
            result = compute_claim_balance(
                policy, employee, claims, claim_date, as_of, claim_type, **options,
            )
        if missing_reason is not None:
            result = replace(result, reason=missing_reason)
        return result, policy, claims

    def _handset_eligibility(
        self,
        policy: ReimbursementPolicy | HandsetPolicy | None,
        claims: tuple[Claim, ...],
        amount: Decimal,
        balance: Decimal,
        as_of: date,
        exclude_claim_id: UUID | None = None,
    ) -> Eligibility:
        prior = tuple(c for c in claims if c.id != exclude_claim_id)
        return evaluate_handset_eligibility(
            policy if isinstance(policy, HandsetPolicy) else None,
            prior,
            amount,
            balance,
            as_of,
            self._config.handset_min_interval_months,
        )

    def _validate_request(self, request: ClaimRequest, today: date) -> ClaimType:
        claim_type = parse_claim_type(request.claim_type)
        if gate_for(claim_type) is Gate.UNCONDITIONAL:
            raise InvalidClaimError("travel claims are submitted with submit_travel_claim")
        if request.claim_amount is None or request.claim_amount <= 0:
            raise InvalidClaimError("claim amount must be greater than zero")
        if request.claim_date is not None and request.claim_date > today:
            raise InvalidClaimError("claim date cannot be in the future")
        if request.total_price is not None and request.total_price < 0:
            raise InvalidClaimError("total price cannot be negative")
        return claim_type

    # =========================================================================
    # Balance
    # =========================================================================

    def get_balance(
        self,
        employee_id: UUID,
        claim_type: ClaimType | str,
        beneficiary: Beneficiary | None = None,
    ) -> BalanceResult:
        """
        Current balance for an employee and claim type, as of the clock's today.

        Always recomputed from persisted claims.  A missing policy yields a
        zero balance with reason ``"no policy"``.

        Raises:
            EmployeeNotFoundError: unknown employee.
            UnknownClaimTypeError: claim type has no gate.
        """
        parsed = parse_claim_type(claim_type)
        employee_orm = self._get_employee(employee_id)
        result, _, _ = self._balance_for(employee_orm, parsed, beneficiary, self._clock.today())
        logger.debug("claim_balance_computed", extra={
            "employee_id": str(employee_id),
            "claim_type": parsed.value,
            "balance": str(result.balance),
            "reason": result.reason,
        })
        return result

    # =========================================================================
    # Submission
    # =========================================================================

    def submit_claim(self, request: ClaimRequest, actor_id: UUID) -> ClaimSubmission:
        """
        Submit a Medicine, Hospital or Mobile Handset claim.

        Preconditions:
            ``request.claim_amount > 0``; the claim date is not in the future.

        Postconditions:
            If admitted, exactly one claim row exists with
            ``balance`` = the recomputed balance and
            ``after_balance = balance - claim_amount``.  Otherwise nothing is
            persisted.

        Raises:
            InvalidClaimError, UnknownClaimTypeError, EmployeeNotFoundError.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            employee_id=str(request.employee_id),
        ):
            try:
                today = self._clock.today()
                claim_type = self._validate_request(request, today)

                logger.info("claim_submission_started", extra={
                    "claim_type": claim_type.value,
                    "claim_amount": str(request.claim_amount),
                })

                employee_orm = self._lock_employee(request.employee_id)
                if not employee_orm.is_active:
                    raise InvalidClaimError("employee is not active")
                claim_date = request.claim_date or today
                balance, policy, claims = self._balance_for(
                    employee_orm, claim_type, request.beneficiary, today,
                    claim_date=claim_date,
                )

                eligibility = None
                if claim_type is ClaimType.MOBILE_HANDSET:
                    eligibility = self._handset_eligibility(
                        policy, claims, request.claim_amount, balance.balance, today,
                    )

                decision = can_submit(request, balance.balance, eligibility)
                if not decision.admit:
                    self._session.rollback()
                    logger.info("claim_rejected", extra={
                        "claim_type": claim_type.value,
                        "claim_amount": str(request.claim_amount),
                        "balance": str(balance.balance),
                        "rejection_code": decision.code.value,
                        "rule": decision.rule,
                    })
                    return ClaimSubmission(decision, balance, None, eligibility)

                claim = Claim(
                    id=uuid4(),
                    employee_id=employee_orm.id,
                    designation_id=employee_orm.designation_id,
                    claim_type=claim_type,
                    claim_date=claim_date,
                    claim_amount=request.claim_amount,
                    balance=balance.balance,
                    after_balance=balance.balance - request.claim_amount,
                    department_id=employee_orm.department_id,
                    beneficiary=request.beneficiary,
                    notes=request.notes,
                    handset_name=request.handset_name,
                    total_price=request.total_price,
                )
                self._session.add(ClaimModel.from_dto(claim, created_by_id=actor_id))
                self._session.commit()

                logger.info("claim_submitted", extra={
                    "claim_id": str(claim.id),
                    "claim_type": claim_type.value,
                    "claim_amount": str(claim.claim_amount),
                    "balance": str(claim.balance),
                    "after_balance": str(claim.after_balance),
                })
                return ClaimSubmission(decision, balance, claim, eligibility)

            except Exception:
                self._session.rollback()
                raise

    def edit_claim(
        self,
        claim_id: UUID,
        actor_id: UUID,
        *,
        claim_amount: Decimal | None = None,
        claim_date: date | None = None,
        beneficiary: Beneficiary | None = _KEEP,
        notes: str | None = None,
        handset_name: str | None = None,
        total_price: Decimal | None = None,
    ) -> ClaimSubmission:
        """
        Correct a pending claim.

        The balance is recomputed excluding the claim being edited, and the
        edited claim must pass admissibility again.  Omitted arguments keep
        their current values; ``beneficiary=None`` clears the beneficiary.
        A changed ``claim_date`` is checked against the balance of its own
        fiscal year.

        Raises:
            ClaimNotFoundError, ClaimAlreadyApprovedError, InvalidClaimError.
        """
        with LogContext.bind(correlation_id=str(uuid4()), actor_id=str(actor_id)):
            try:
                orm = self._session.get(ClaimModel, claim_id)
                if orm is None:
                    raise ClaimNotFoundError(claim_id)
                if orm.is_approved:
                    raise ClaimAlreadyApprovedError(claim_id)

                current = orm.to_dto()
                request = ClaimRequest(
                    employee_id=current.employee_id,
                    claim_type=current.claim_type,
                    claim_amount=claim_amount if claim_amount is not None else current.claim_amount,
                    claim_date=claim_date or current.claim_date,
                    beneficiary=current.beneficiary if beneficiary is _KEEP else beneficiary,
                    notes=notes if notes is not None else current.notes,
                    handset_name=handset_name if handset_name is not None else current.handset_name,
                    total_price=total_price if total_price is not None else current.total_price,
                )
                today = self._clock.today()
                claim_type = self._validate_request(request, today)

                with LogContext.bind(employee_id=str(current.employee_id)):
                    employee_orm = self._lock_employee(current.employee_id)
                    balance, policy, claims = self._balance_for(
                        employee_orm, claim_type, request.beneficiary, today,
                        exclude_claim_id=claim_id,
                        claim_date=request.claim_date,
                    )

                    eligibility = None
                    if claim_type is ClaimType.MOBILE_HANDSET:
                        eligibility = self._handset_eligibility(
                            policy, claims, request.claim_amount, balance.balance, today,
                            exclude_claim_id=claim_id,
                        )

                    decision = can_submit(request, balance.balance, eligibility)
                    if not decision.admit:
                        self._session.rollback()
                        logger.info("claim_edit_rejected", extra={
                            "claim_id": str(claim_id),
                            "claim_amount": str(request.claim_amount),
                            "balance": str(balance.balance),
                            "rejection_code": decision.code.value,
                        })
                        return ClaimSubmission(decision, balance, None, eligibility)

                    orm.claim_amount = request.claim_amount
                    orm.claim_date = request.claim_date
                    orm.beneficiary = request.beneficiary.value if request.beneficiary else None
                    orm.notes = request.notes
                    orm.handset_name = request.handset_name
                    orm.total_price = request.total_price
                    orm.balance = balance.balance
                    orm.after_balance = balance.balance - request.claim_amount
                    orm.updated_by_id = actor_id
                    self._session.commit()

                    logger.info("claim_edited", extra={
                        "claim_id": str(claim_id),
                        "claim_amount": str(request.claim_amount),
                        "balance": str(balance.balance),
                    })
                    return ClaimSubmission(decision, balance, orm.to_dto(), eligibility)

            except Exception:
                self._session.rollback()
                raise

    def approve_claim(self, claim_id: UUID, approver_id: UUID) -> Claim:
        """
        Approve a pending claim.

        Raises:
            ClaimNotFoundError, ClaimAlreadyApprovedError.
        """
        try:
            orm = self._session.execute(
                select(ClaimModel).where(ClaimModel.id == claim_id).with_for_update()
            ).scalar_one_or_none()
            if orm is None:
                raise ClaimNotFoundError(claim_id)
            if orm.is_approved:
                raise ClaimAlreadyApprovedError(claim_id)

            orm.is_approved = True
            orm.approved_by_id = approver_id
            orm.approved_at = self._clock.now()
            orm.updated_by_id = approver_id
            self._session.commit()

            logger.info("claim_approved", extra={
                "claim_id": str(claim_id),
                "approver_id": str(approver_id),
            })
            return orm.to_dto()

        except Exception:
            self._session.rollback()
            raise

    def list_employee_claims(
        self,
        employee_id: UUID,
        claim_type: ClaimType | str | None = None,
    ) -> tuple[Claim, ...]:
        """Claims of one employee ordered by claim date."""
        parsed = parse_claim_type(claim_type) if claim_type is not None else None
        return self._load_claims(employee_id, parsed)

    # =========================================================================
    # Mobile handset
    # =========================================================================

    def check_new_handset_claim(
        self,
        employee_id: UUID,
        amount: Decimal = Decimal("0"),
    ) -> Eligibility:
        """
        Whether the employee may file a new mobile handset claim today.

        ``amount`` additionally checks the remaining allowance; the default
        only checks policy presence and the minimum interval.
        """
        employee_orm = self._get_employee(employee_id)
        today = self._clock.today()
        balance, policy, claims = self._balance_for(
            employee_orm, ClaimType.MOBILE_HANDSET, None, today,
        )
        eligibility = self._handset_eligibility(policy, claims, amount, balance.balance, today)
        logger.info("handset_eligibility_checked", extra={
            "employee_id": str(employee_id),
            "eligible": eligibility.eligible,
            "next_eligible_date": eligibility.next_eligible_date,
        })
        return eligibility

    # =========================================================================
    # Travel
    # =========================================================================

    def get_travel_amounts(self, designation_id: UUID, city: str) -> TravelPolicy:
        """
        Default accommodation and daily allowance for a trip.

        Raises:
            PolicyNotFoundError: neither the city nor the fallback city has
                a travel policy for the designation.
        """
        policies = self._policies.load_travel_policies(designation_id)
        try:
            return resolve_travel_policy(
                policies, designation_id, city, self._config.travel_fallback_city,
            )
        except PolicyNotFoundError:
            logger.info("travel_policy_not_found", extra={
                "designation_id": str(designation_id),
                "travel_city": city,
            })
            raise

    def submit_travel_claim(
        self,
        employee_id: UUID,
        travel_city: str,
        from_date: date,
        to_date: date,
        purpose: str,
        actor_id: UUID,
        *,
        accommodation_amount: Decimal | None = None,
        daily_allowance: Decimal | None = None,
        transport: str | None = None,
        remarks: str | None = None,
    ) -> TravelClaim:
        """
        File a travel claim.

        Amounts default from the travel policy; explicitly supplied amounts
        override it and make the policy optional.

        Raises:
            InvalidClaimError: inverted dates, blank city or purpose,
                negative amounts.
            PolicyNotFoundError: no policy and no explicit amounts.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            employee_id=str(employee_id),
        ):
            try:
                if not travel_city or not travel_city.strip():
                    raise InvalidClaimError("travel city is required")
                if not purpose or not purpose.strip():
                    raise InvalidClaimError("purpose is required")
                if to_date < from_date:
                    raise InvalidClaimError("to date cannot be before from date")
                for label, value in (
                    ("accommodation amount", accommodation_amount),
                    ("daily allowance", daily_allowance),
                ):
                    if value is not None and value < 0:
                        raise InvalidClaimError(f"{label} cannot be negative")

                employee_orm = self._get_employee(employee_id)
                if accommodation_amount is None or daily_allowance is None:
                    policy = self.get_travel_amounts(employee_orm.designation_id, travel_city)
                    if accommodation_amount is None:
                        accommodation_amount = policy.accommodation_amount
                    if daily_allowance is None:
                        daily_allowance = policy.daily_allowance

                travel_claim = TravelClaim(
                    id=uuid4(),
                    employee_id=employee_id,
                    designation_id=employee_orm.designation_id,
                    travel_city=travel_city.strip(),
                    from_date=from_date,
                    to_date=to_date,
                    purpose=purpose.strip(),
                    accommodation_amount=accommodation_amount,
                    daily_allowance=daily_allowance,
                    transport=transport,
                    remarks=remarks,
                )
                self._session.add(TravelClaimModel.from_dto(travel_claim, created_by_id=actor_id))
                self._session.commit()

                logger.info("travel_claim_submitted", extra={
                    "travel_claim_id": str(travel_claim.id),
                    "travel_city": travel_claim.travel_city,
                    "days": travel_claim.days,
                })
                return travel_claim

            except Exception:
                self._session.rollback()
                raise

    def approve_travel_claim(self, travel_claim_id: UUID, approver_id: UUID) -> TravelClaim:
        """
        Approve a travel claim.

        Raises:
            ClaimNotFoundError, ClaimAlreadyApprovedError.
        """
        try:
            orm = self._session.get(TravelClaimModel, travel_claim_id)
            if orm is None:
                raise ClaimNotFoundError(travel_claim_id)
            if orm.is_approved:
                raise ClaimAlreadyApprovedError(travel_claim_id)

            orm.is_approved = True
            orm.approved_by_id = approver_id
            orm.approved_at = self._clock.now()
            orm.updated_by_id = approver_id
            self._session.commit()

            logger.info("travel_claim_approved", extra={
                "travel_claim_id": str(travel_claim_id),
                "approver_id": str(approver_id),
            })
            return orm.to_dto()

        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Opening balances
    # =========================================================================

    def record_balance_adjustment(
        self,
        employee_id: UUID,
        claim_type: ClaimType | str,
        amount: Decimal,
        actor_id: UUID,
        *,
        effective_date: date | None = None,
        notes: str | None = None,
    ) -> BalanceAdjustment:
        """
        Grant (or, with a negative amount, withdraw) an opening balance.

        Adjustments dated inside the accumulation window add to the
        entitlement for that claim type.

        Raises:
            InvalidClaimError: zero amount or a travel claim type.
            EmployeeNotFoundError: unknown employee.
        """
        try:
            parsed = parse_claim_type(claim_type)
            if gate_for(parsed) is Gate.UNCONDITIONAL:
                raise InvalidClaimError("travel claims have no balance to adjust")
            if amount == 0:
                raise InvalidClaimError("adjustment amount cannot be zero")

            self._lock_employee(employee_id)
            adjustment = BalanceAdjustment(
                id=uuid4(),
                employee_id=employee_id,
                claim_type=parsed,
                amount=amount,
                effective_date=effective_date or self._clock.today(),
                notes=notes,
            )
            self._session.add(BalanceAdjustmentModel.from_dto(adjustment, created_by_id=actor_id))
            self._session.commit()

            logger.info("claim_balance_adjusted", extra={
                "adjustment_id": str(adjustment.id),
                "employee_id": str(employee_id),
                "claim_type": parsed.value,
                "amount": str(amount),
            })
            return adjustment

        except Exception:
            self._session.rollback()
            raise
