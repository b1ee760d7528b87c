"""
Envelope use cases - CRUD over budget categories and `spent` reconciliation
"""
import logging
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from envelope_budget.application.errors import NotFoundError, UserError
from envelope_budget.application.permissions import ensure_user_role
from envelope_budget.domain.envelope import Envelope as EnvelopeEntity
from envelope_budget.domain.roles import ANY_MEMBER, ADMIN_OR_OWNER
from envelope_budget.domain.transaction import TransactionType, spent_adjustment
from envelope_budget.infrastructure.db.models import Envelope, TransactionModel
from envelope_budget.infrastructure.eventlog.repository import EventLogRepository

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "category", "amount", "color", "icon", "is_archived")


class EnvelopeValidationError(UserError):
    """Envelope input rejected"""
    pass


def _get_envelope(db: Session, envelope_id: int, budget_profile_id: int) -> Envelope:
    envelope = db.query(Envelope).filter(
        Envelope.id == envelope_id,
        Envelope.budget_profile_id == budget_profile_id,
    ).first()
    if not envelope:
        raise NotFoundError("Envelope not found")
    return envelope


def _clean_text(value: str, label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise EnvelopeValidationError(f"Envelope {label} cannot be empty")
    return value


def _validate_target(amount: Decimal) -> Decimal:
    amount = Decimal(amount)
    if amount < 0:
        raise EnvelopeValidationError("Envelope amount cannot be negative")
    return amount


def list_envelopes(
    db: Session,
    user_id: int,
    budget_profile_id: int,
    include_archived: bool = False,
) -> list[Envelope]:
    ensure_user_role(db, user_id, budget_profile_id, ANY_MEMBER)

    query = db.query(Envelope).filter(Envelope.budget_profile_id == budget_profile_id)
    if not include_archived:
        query = query.filter(Envelope.is_archived == False)

    return query.order_by(Envelope.name.asc()).all()


class CreateEnvelopeUseCase:
    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        user_id: int,
        budget_profile_id: int,
        name: str,
        category: str,
        amount: Decimal = Decimal("0"),
        color: str | None = None,
        icon: str | None = None,
    ) -> Envelope:
        ensure_user_role(self.db, user_id, budget_profile_id, ANY_MEMBER)

        envelope = Envelope(
            budget_profile_id=budget_profile_id,
            name=_clean_text(name, "name"),
            category=_clean_text(category, "category"),
            amount=_validate_target(amount),
            spent=Decimal("0"),
            color=color,
            icon=icon,
            is_archived=False,
        )
        self.db.add(envelope)
        self.db.flush()

        self.event_repo.append_event(
            budget_profile_id=budget_profile_id,
            event_type="envelope_created",
            payload=EnvelopeEntity.created(envelope.id, envelope.name, envelope.category, envelope.amount),
            actor_user_id=user_id,
        )
        self.db.commit()
        return envelope


class UpdateEnvelopeUseCase:
    """Use case: edit envelope attributes. `spent` is not editable here."""

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(self, envelope_id: int, user_id: int, budget_profile_id: int, **changes) -> Envelope:
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise EnvelopeValidationError(
                f"Fields cannot be updated: {', '.join(sorted(unknown))}"
            )

        ensure_user_role(self.db, user_id, budget_profile_id, ANY_MEMBER)
        envelope = _get_envelope(self.db, envelope_id, budget_profile_id)

        if "name" in changes:
            changes["name"] = _clean_text(changes["name"], "name")
        if "category" in changes:
            changes["category"] = _clean_text(changes["category"], "category")
        if "amount" in changes:
            changes["amount"] = _validate_target(changes["amount"])

        for key, value in changes.items():
            setattr(envelope, key, value)

        self.event_repo.append_event(
            budget_profile_id=budget_profile_id,
            event_type="envelope_updated",
            payload=EnvelopeEntity.updated(envelope_id, **changes),
            actor_user_id=user_id,
        )
        self.db.commit()
        return envelope


class DeleteEnvelopeUseCase:
    """
    Use case: delete an envelope that no transaction references

    The foreign key restricts the delete as well; checking first gives a
    readable error instead of an integrity violation.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(self, envelope_id: int, user_id: int, budget_profile_id: int) -> None:
        ensure_user_role(self.db, user_id, budget_profile_id, ANY_MEMBER)
        envelope = _get_envelope(self.db, envelope_id, budget_profile_id)

        linked = self.db.query(func.count(TransactionModel.id)).filter(
            TransactionModel.envelope_id == envelope_id
        ).scalar()
        if linked:
            raise EnvelopeValidationError(
                "Cannot delete envelope with existing transactions. "
                "Archive it instead or reassign its transactions"
            )

        name = envelope.name
        self.db.delete(envelope)
        self.event_repo.append_event(
            budget_profile_id=budget_profile_id,
            event_type="envelope_deleted",
            payload=EnvelopeEntity.deleted(envelope_id, name),
            actor_user_id=user_id,
        )
        self.db.commit()


class RecalculateEnvelopeSpentUseCase:
    """
    Use case: rebuild `spent` of every envelope in the profile from the
    linked transactions

    Manual reconciliation path for aggregates that drifted (rows written
    outside the use cases, data repairs). ADMIN+.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(self, user_id: int, budget_profile_id: int) -> dict[int, Decimal]:
        """
        Returns:
            envelope_id -> corrected spent, for envelopes that changed
        """
        ensure_user_role(self.db, user_id, budget_profile_id, ADMIN_OR_OWNER)

        envelopes = self.db.query(Envelope).filter(
            Envelope.budget_profile_id == budget_profile_id
        ).all()

        totals: dict[int, Decimal] = {e.id: Decimal("0") for e in envelopes}
        rows = self.db.query(
            TransactionModel.envelope_id, TransactionModel.type, TransactionModel.amount
        ).filter(
            TransactionModel.budget_profile_id == budget_profile_id,
            TransactionModel.envelope_id.isnot(None),
            TransactionModel.type != TransactionType.TRANSFER,
        ).all()
        for envelope_id, tx_type, amount in rows:
            totals[envelope_id] = totals.get(envelope_id, Decimal("0")) + spent_adjustment(tx_type, amount)

        corrected: dict[int, Decimal] = {}
        audit: dict[int, dict[str, str]] = {}
        for envelope in envelopes:
            expected = totals[envelope.id]
            if Decimal(envelope.spent) != expected:
                audit[envelope.id] = {"old": str(envelope.spent), "new": str(expected)}
                envelope.spent = expected
                corrected[envelope.id] = expected

        if corrected:
            logger.info(
                "Recalculated spent for %d envelope(s) in profile %s",
                len(corrected), budget_profile_id,
            )
            self.event_repo.append_event(
                budget_profile_id=budget_profile_id,
                event_type="envelopes_recalculated",
                payload=EnvelopeEntity.recalculated(audit),
                actor_user_id=user_id,
            )
        self.db.commit()
        return corrected
