"""
Entitlement Policy Administration (``backoffice_modules.policy.service``).

Responsibility
--------------
Create and edit the three policy tables and load them as DTO snapshots for
the pure lookup engine.

Architecture position
---------------------
**Modules layer** -- thin ERP glue.  Administrative writes live here; the
claim flow only ever calls the ``load_*`` readers.

Invariants enforced
-------------------
* Key uniqueness per table, checked before insert and backed by a unique
  constraint: (designation, policy type), (designation, is_sales),
  (designation, city).
* Amounts and percentages are non-negative.
* Each public write method owns the transaction boundary.

Failure modes
-------------
* ``DuplicatePolicyError`` -- key already taken.
* ``InvalidPolicyError`` -- negative amounts, bad accumulable years.
* ``PolicyNotFoundError`` -- editing a rule that does not exist.
* ``DesignationNotFoundError`` -- policy for an unknown designation.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from backoffice_kernel.exceptions import (
    DesignationNotFoundError,
    DuplicatePolicyError,
    InvalidPolicyError,
    PolicyNotFoundError,
)
from backoffice_kernel.logging_config import get_logger
from backoffice_modules.hr.orm import DesignationModel
from backoffice_modules.policy.models import (
    AmountType,
    Beneficiary,
    HandsetPolicy,
    PolicyTables,
    ReimbursementPolicy,
    ReimbursementPolicyType,
    TravelPolicy,
)
from backoffice_modules.policy.orm import (
    HandsetPolicyModel,
    ReimbursementPolicyModel,
    TravelPolicyModel,
)

logger = get_logger("modules.policy.service")


def _validate_reimbursement(policy: ReimbursementPolicy) -> None:
    if policy.fixed_amount < 0:
        raise InvalidPolicyError("fixed_amount cannot be negative")
    if policy.salary_percentage < 0:
        raise InvalidPolicyError("salary_percentage cannot be negative")
    _validate_years(policy.accumulable_years)


def _validate_handset(policy: HandsetPolicy) -> None:
    if policy.amount < 0:
        raise InvalidPolicyError("handset amount cannot be negative")
    _validate_years(policy.accumulable_years)


def _validate_travel(policy: TravelPolicy) -> None:
    if not policy.traveling_city or not policy.traveling_city.strip():
        raise InvalidPolicyError("traveling_city cannot be empty")
    if policy.accommodation_amount < 0:
        raise InvalidPolicyError("accommodation_amount cannot be negative")
    if policy.daily_allowance < 0:
        raise InvalidPolicyError("daily_allowance cannot be negative")


def _validate_years(years: int | None) -> None:
    if years is not None and years < 0:
        raise InvalidPolicyError("accumulable_years cannot be negative")


class PolicyService:
    """
    Maintains reimbursement, handset and travel policy rules.

    Transaction boundary: this service commits on success, rolls back on
    failure.
    """

    def __init__(self, session: Session):
        self._session = session

    def _require_designation(self, designation_id: UUID) -> None:
        if self._session.get(DesignationModel, designation_id) is None:
            raise DesignationNotFoundError(designation_id)

    # =========================================================================
    # Reimbursement (medical / hospitalization)
    # =========================================================================

    def create_reimbursement_policy(
        self,
        designation_id: UUID,
        policy_type: ReimbursementPolicyType,
        actor_id: UUID,
        *,
        amount_type: AmountType = AmountType.BASIC_SALARY,
        fixed_amount: Decimal = Decimal("0"),
        salary_percentage: Decimal = Decimal("100"),
        use_whichever_is_higher: bool = True,
        applicable_to: Iterable[Beneficiary] = (),
        accumulable_years: int | None = None,
    ) -> ReimbursementPolicy:
        """
        Add a medical or hospitalization rule for a designation.

        Raises:
            DuplicatePolicyError: a rule exists for (designation, policy_type).
            InvalidPolicyError: negative amounts or years.
        """
        try:
            self._require_designation(designation_id)
            policy = ReimbursementPolicy(
                id=uuid4(),
                designation_id=designation_id,
                policy_type=policy_type,
                amount_type=amount_type,
                fixed_amount=fixed_amount,
                salary_percentage=salary_percentage,
                use_whichever_is_higher=use_whichever_is_higher,
                applicable_to=frozenset(applicable_to),
                accumulable_years=accumulable_years,
            )
            _validate_reimbursement(policy)

            existing = (
                self._session.query(ReimbursementPolicyModel)
                .filter_by(designation_id=designation_id, policy_type=policy_type.value)
                .first()
            )
            if existing is not None:
                raise DuplicatePolicyError("reimbursement", designation_id, policy_type.value)

            self._session.add(ReimbursementPolicyModel.from_dto(policy, created_by_id=actor_id))
            self._session.commit()

            logger.info("reimbursement_policy_created", extra={
                "policy_id": str(policy.id),
                "designation_id": str(designation_id),
                "policy_type": policy_type.value,
                "amount_type": amount_type.value,
                "fixed_amount": str(fixed_amount),
            })
            return policy

        except Exception:
            self._session.rollback()
            raise

    def edit_reimbursement_policy(
        self,
        policy_id: UUID,
        actor_id: UUID,
        **changes: Any,
    ) -> ReimbursementPolicy:
        """
        Change attributes of an existing reimbursement rule.

        The lookup key (designation, policy type) may change too, as long as
        it stays unique.
        """
        try:
            orm = self._session.get(ReimbursementPolicyModel, policy_id)
            if orm is None:
                raise PolicyNotFoundError("reimbursement", None, str(policy_id))

            if "applicable_to" in changes:
                changes["applicable_to"] = frozenset(changes["applicable_to"])
            updated = replace(orm.to_dto(), **changes)
            _validate_reimbursement(updated)

            clash = (
                self._session.query(ReimbursementPolicyModel)
                .filter(
                    ReimbursementPolicyModel.designation_id == updated.designation_id,
                    ReimbursementPolicyModel.policy_type == updated.policy_type.value,
                    ReimbursementPolicyModel.id != policy_id,
                )
                .first()
            )
            if clash is not None:
                raise DuplicatePolicyError(
                    "reimbursement", updated.designation_id, updated.policy_type.value,
                )

            fresh = ReimbursementPolicyModel.from_dto(updated, created_by_id=orm.created_by_id)
            for column in (
                "designation_id", "policy_type", "amount_type", "fixed_amount",
                "salary_percentage", "use_whichever_is_higher", "applicable_to",
                "accumulable_years",
            ):
                setattr(orm, column, getattr(fresh, column))
            orm.updated_by_id = actor_id
            self._session.commit()

            logger.info("reimbursement_policy_edited", extra={
                "policy_id": str(policy_id),
                "changed_fields": sorted(changes),
            })
            return updated

        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Mobile handset
    # =========================================================================

    def create_handset_policy(
        self,
        designation_id: UUID,
        amount: Decimal,
        actor_id: UUID,
        *,
        is_sales: bool = False,
        accumulable_years: int | None = None,
        remarks: str | None = None,
    ) -> HandsetPolicy:
        """
        Add a handset allowance for a designation.

        Raises:
            DuplicatePolicyError: a rule exists for (designation, is_sales).
        """
        try:
            self._require_designation(designation_id)
            policy = HandsetPolicy(
                id=uuid4(),
                designation_id=designation_id,
                amount=amount,
                is_sales=is_sales,
                accumulable_years=accumulable_years,
                remarks=remarks,
            )
            _validate_handset(policy)

            existing = (
                self._session.query(HandsetPolicyModel)
                .filter_by(designation_id=designation_id, is_sales=is_sales)
                .first()
            )
            if existing is not None:
                raise DuplicatePolicyError(
                    "handset", designation_id, "sales" if is_sales else "general",
                )

            self._session.add(HandsetPolicyModel.from_dto(policy, created_by_id=actor_id))
            self._session.commit()

            logger.info("handset_policy_created", extra={
                "policy_id": str(policy.id),
                "designation_id": str(designation_id),
                "is_sales": is_sales,
                "amount": str(amount),
            })
            return policy

        except Exception:
            self._session.rollback()
            raise

    def edit_handset_policy(
        self,
        policy_id: UUID,
        actor_id: UUID,
        **changes: Any,
    ) -> HandsetPolicy:
        try:
            orm = self._session.get(HandsetPolicyModel, policy_id)
            if orm is None:
                raise PolicyNotFoundError("handset", None, str(policy_id))

            updated = replace(orm.to_dto(), **changes)
            _validate_handset(updated)

            clash = (
                self._session.query(HandsetPolicyModel)
                .filter(
                    HandsetPolicyModel.designation_id == updated.designation_id,
                    HandsetPolicyModel.is_sales == updated.is_sales,
                    HandsetPolicyModel.id != policy_id,
                )
                .first()
            )
            if clash is not None:
                raise DuplicatePolicyError(
                    "handset", updated.designation_id,
                    "sales" if updated.is_sales else "general",
                )

            orm.designation_id = updated.designation_id
            orm.is_sales = updated.is_sales
            orm.amount = updated.amount
            orm.accumulable_years = updated.accumulable_years
            orm.remarks = updated.remarks
            orm.updated_by_id = actor_id
            self._session.commit()

            logger.info("handset_policy_edited", extra={
                "policy_id": str(policy_id),
                "changed_fields": sorted(changes),
            })
            return updated

        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Travel
    # =========================================================================

    def create_travel_policy(
        self,
        designation_id: UUID,
        traveling_city: str,
        accommodation_amount: Decimal,
        daily_allowance: Decimal,
        actor_id: UUID,
    ) -> TravelPolicy:
        """
        Add travel allowance defaults for a designation and city.

        Raises:
            DuplicatePolicyError: a rule exists for (designation, city).
        """
        try:
            self._require_designation(designation_id)
            policy = TravelPolicy(
                id=uuid4(),
                designation_id=designation_id,
                traveling_city=(traveling_city or "").strip(),
                accommodation_amount=accommodation_amount,
                daily_allowance=daily_allowance,
            )
            _validate_travel(policy)

            existing = (
                self._session.query(TravelPolicyModel)
                .filter_by(designation_id=designation_id, traveling_city=policy.traveling_city)
                .first()
            )
            if existing is not None:
                raise DuplicatePolicyError("travel", designation_id, policy.traveling_city)

            self._session.add(TravelPolicyModel.from_dto(policy, created_by_id=actor_id))
            self._session.commit()

            logger.info("travel_policy_created", extra={
                "policy_id": str(policy.id),
                "designation_id": str(designation_id),
                "traveling_city": policy.traveling_city,
            })
            return policy

        except Exception:
            self._session.rollback()
            raise

    def edit_travel_policy(
        self,
        policy_id: UUID,
        actor_id: UUID,
        **changes: Any,
    ) -> TravelPolicy:
        try:
            orm = self._session.get(TravelPolicyModel, policy_id)
            if orm is None:
                raise PolicyNotFoundError("travel", None, str(policy_id))

            updated = replace(orm.to_dto(), **changes)
            _validate_travel(updated)

            clash = (
                self._session.query(TravelPolicyModel)
                .filter(
                    TravelPolicyModel.designation_id == updated.designation_id,
                    TravelPolicyModel.traveling_city == updated.traveling_city,
                    TravelPolicyModel.id != policy_id,
                )
                .first()
            )
            if clash is not None:
                raise DuplicatePolicyError("travel", updated.designation_id, updated.traveling_city)

            orm.designation_id = updated.designation_id
            orm.traveling_city = updated.traveling_city
            orm.accommodation_amount = updated.accommodation_amount
            orm.daily_allowance = updated.daily_allowance
            orm.updated_by_id = actor_id
            self._session.commit()

            logger.info("travel_policy_edited", extra={
                "policy_id": str(policy_id),
                "changed_fields": sorted(changes),
            })
            return updated

        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Loaders
    # =========================================================================

    def load_reimbursement_policies(self, designation_id: UUID) -> tuple[ReimbursementPolicy, ...]:
        rows = (
            self._session.query(ReimbursementPolicyModel)
            .filter_by(designation_id=designation_id)
            .all()
        )
        return tuple(row.to_dto() for row in rows)

    def load_handset_policies(self, designation_id: UUID) -> tuple[HandsetPolicy, ...]:
        rows = (
            self._session.query(HandsetPolicyModel)
            .filter_by(designation_id=designation_id)
            .all()
        )
        return tuple(row.to_dto() for row in rows)

    def load_travel_policies(self, designation_id: UUID) -> tuple[TravelPolicy, ...]:
        rows = (
            self._session.query(TravelPolicyModel)
            .filter_by(designation_id=designation_id)
            .order_by(TravelPolicyModel.traveling_city)
            .all()
        )
        return tuple(row.to_dto() for row in rows)

    def load_tables(self, designation_id: UUID) -> PolicyTables:
        """Snapshot every policy row for one designation."""
        return PolicyTables(
            reimbursement=self.load_reimbursement_policies(designation_id),
            handset=self.load_handset_policies(designation_id),
            travel=self.load_travel_policies(designation_id),
        )
