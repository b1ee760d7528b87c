"""
Transaction use cases - keep envelope `spent` consistent with the
transactions linked to it

Every mutation runs as one unit of work: the reversal of the old
contribution, the row write and the application of the new contribution
are flushed in the same session and committed once. `spent` is changed
with an in-SQL increment, never read-modify-write, and the transaction
row being edited or deleted is read under a row lock, so the old
contribution that gets reversed is always the committed one.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from sqlalchemy import update
from sqlalchemy.orm import Session

from envelope_budget.application.errors import NotFoundError, UserError
from envelope_budget.application.permissions import ensure_user_role
from envelope_budget.domain.roles import ANY_MEMBER
from envelope_budget.domain.transaction import (
    Transaction, TransactionType, spent_adjustment, crosses_transfer_boundary,
)
from envelope_budget.infrastructure.db.models import Envelope, TransactionModel
from envelope_budget.infrastructure.eventlog.repository import EventLogRepository

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("description", "amount", "date", "type", "envelope_id")


class TransactionValidationError(UserError):
    """Transaction input rejected"""
    pass


@dataclass
class BulkImportRow:
    """Already-parsed import row; the sign of amount carries the type."""
    description: str
    amount: Decimal
    date: datetime


@dataclass
class BulkImportResult:
    success_count: int = 0
    error_count: int = 0
    errors: list[str] = field(default_factory=list)


# ── Shared helpers ───────────────────────────────────────────────────────────

def _coerce_type(value) -> TransactionType:
    if value is None:
        raise TransactionValidationError("Transaction type cannot be empty")
    try:
        return TransactionType(value)
    except ValueError:
        raise TransactionValidationError(f"Unknown transaction type: {value}")


def _validate_amount(amount: Decimal) -> None:
    if amount is None or Decimal(amount) <= 0:
        raise TransactionValidationError("Transaction amount must be greater than zero")


def _validate_description(description: str) -> None:
    if not description or not description.strip():
        raise TransactionValidationError("Transaction description cannot be empty")


def _get_envelope(db: Session, envelope_id: int, budget_profile_id: int) -> Envelope:
    envelope = db.query(Envelope).filter(
        Envelope.id == envelope_id,
        Envelope.budget_profile_id == budget_profile_id,
    ).first()
    if not envelope:
        raise NotFoundError(f"Envelope #{envelope_id} not found")
    return envelope


def _adjust_spent(db: Session, envelope_id: int, delta: Decimal) -> None:
    """spent = spent + delta, evaluated by the database"""
    db.execute(
        update(Envelope)
        .where(Envelope.id == envelope_id)
        .values(spent=Envelope.spent + delta)
    )


def _get_transaction(db: Session, transaction_id: int, budget_profile_id: int) -> TransactionModel:
    """Row locked until commit; populate_existing drops stale identity-map values"""
    tx = db.query(TransactionModel).filter(
        TransactionModel.id == transaction_id,
        TransactionModel.budget_profile_id == budget_profile_id,
    ).with_for_update().populate_existing().first()
    if not tx:
        raise NotFoundError("Transaction not found")
    return tx


def _snapshot(tx: TransactionModel) -> Transaction:
    return Transaction(
        id=tx.id,
        budget_profile_id=tx.budget_profile_id,
        type=TransactionType(tx.type),
        amount=tx.amount,
        description=tx.description,
        date=tx.date,
        envelope_id=tx.envelope_id,
    )


# ── Queries ──────────────────────────────────────────────────────────────────

def list_transactions(
    db: Session,
    user_id: int,
    budget_profile_id: int,
    envelope_id: int | None = None,
) -> list[TransactionModel]:
    """Profile transactions, most recent first"""
    ensure_user_role(db, user_id, budget_profile_id, ANY_MEMBER)

    query = db.query(TransactionModel).filter(
        TransactionModel.budget_profile_id == budget_profile_id
    )
    if envelope_id is not None:
        query = query.filter(TransactionModel.envelope_id == envelope_id)

    return query.order_by(TransactionModel.date.desc(), TransactionModel.id.desc()).all()


# ── Use cases ────────────────────────────────────────────────────────────────

class CreateTransactionUseCase:
    """
    Use case: record an EXPENSE or INCOME, optionally linked to an envelope

    Process:
    1. Role check (MEMBER+), reject TRANSFER and invalid input
    2. Insert the transaction row
    3. Apply its signed adjustment to the envelope, if linked
    4. Audit event, single commit
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        user_id: int,
        budget_profile_id: int,
        description: str,
        amount: Decimal,
        date: datetime,
        tx_type: TransactionType | str,
        envelope_id: int | None = None,
    ) -> TransactionModel:
        ensure_user_role(self.db, user_id, budget_profile_id, ANY_MEMBER)

        tx_type = _coerce_type(tx_type)
        if tx_type == TransactionType.TRANSFER:
            raise TransactionValidationError(
                "Use the transfer operation for transfers between envelopes"
            )
        _validate_amount(amount)
        _validate_description(description)

        if envelope_id is not None:
            _get_envelope(self.db, envelope_id, budget_profile_id)

        tx = TransactionModel(
            budget_profile_id=budget_profile_id,
            envelope_id=envelope_id,
            description=description.strip(),
            amount=Decimal(amount),
            date=date,
            type=tx_type,
        )
        self.db.add(tx)
        self.db.flush()

        if envelope_id is not None:
            _adjust_spent(self.db, envelope_id, spent_adjustment(tx_type, Decimal(amount)))

        self.event_repo.append_event(
            budget_profile_id=budget_profile_id,
            event_type="transaction_created",
            payload=Transaction.created(
                transaction_id=tx.id,
                budget_profile_id=budget_profile_id,
                tx_type=tx_type,
                amount=Decimal(amount),
                description=tx.description,
                date=date,
                envelope_id=envelope_id,
            ),
            actor_user_id=user_id,
        )

        self.db.commit()
        return tx


class UpdateTransactionUseCase:
    """
    Use case: edit a transaction (description, amount, date, type, envelope)

    The old contribution is reversed on the old envelope and the new one
    applied on the resolved envelope, which may be the same, another one
    or none. Type may switch between EXPENSE and INCOME, never to or
    from TRANSFER.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        transaction_id: int,
        user_id: int,
        budget_profile_id: int,
        **changes,
    ) -> TransactionModel:
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise TransactionValidationError(
                f"Fields cannot be updated: {', '.join(sorted(unknown))}"
            )

        ensure_user_role(self.db, user_id, budget_profile_id, ANY_MEMBER)
        tx = _get_transaction(self.db, transaction_id, budget_profile_id)

        old_type = TransactionType(tx.type)
        new_type = _coerce_type(changes["type"]) if "type" in changes else old_type
        if crosses_transfer_boundary(old_type, new_type):
            raise TransactionValidationError(
                "Cannot change transaction type to or from TRANSFER. "
                "Delete the transaction and create a new one instead"
            )

        if "amount" in changes:
            _validate_amount(changes["amount"])
        if "description" in changes:
            _validate_description(changes["description"])
        if "date" in changes and changes["date"] is None:
            raise TransactionValidationError("Transaction date cannot be empty")

        old_envelope_id = tx.envelope_id
        new_envelope_id = changes["envelope_id"] if "envelope_id" in changes else old_envelope_id
        if new_envelope_id is not None and new_envelope_id != old_envelope_id:
            _get_envelope(self.db, new_envelope_id, budget_profile_id)

        old_snapshot = {
            "type": old_type.value,
            "amount": str(tx.amount),
            "envelope_id": old_envelope_id,
        }

        if new_type == TransactionType.TRANSFER:
            # Transfers never touch envelope balances
            self._apply_changes(tx, changes, new_envelope_id)
        else:
            old_adjustment = spent_adjustment(old_type, tx.amount)
            new_amount = Decimal(changes["amount"]) if "amount" in changes else tx.amount
            new_adjustment = spent_adjustment(new_type, new_amount)

            if old_envelope_id is not None:
                _adjust_spent(self.db, old_envelope_id, -old_adjustment)

            self._apply_changes(tx, changes, new_envelope_id)

            if new_envelope_id is not None:
                _adjust_spent(self.db, new_envelope_id, new_adjustment)

        self.event_repo.append_event(
            budget_profile_id=budget_profile_id,
            event_type="transaction_updated",
            payload=Transaction.updated(transaction_id, old_snapshot, **changes),
            actor_user_id=user_id,
        )

        self.db.commit()
        return tx

    def _apply_changes(self, tx: TransactionModel, changes: dict, envelope_id: int | None) -> None:
        if "description" in changes:
            tx.description = changes["description"].strip()
        if "amount" in changes:
            tx.amount = Decimal(changes["amount"])
        if "date" in changes:
            tx.date = changes["date"]
        if "type" in changes:
            tx.type = TransactionType(changes["type"])
        tx.envelope_id = envelope_id
        self.db.flush()


class DeleteTransactionUseCase:
    """Use case: delete a transaction, reversing its envelope contribution"""

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(self, transaction_id: int, user_id: int, budget_profile_id: int) -> Transaction:
        """
        Returns:
            Snapshot of the deleted transaction
        """
        ensure_user_role(self.db, user_id, budget_profile_id, ANY_MEMBER)
        tx = _get_transaction(self.db, transaction_id, budget_profile_id)

        if tx.type == TransactionType.TRANSFER:
            raise TransactionValidationError("Deleting transfer transactions is not supported")

        snapshot = _snapshot(tx)

        if snapshot.envelope_id is not None:
            _adjust_spent(
                self.db,
                snapshot.envelope_id,
                -spent_adjustment(snapshot.type, snapshot.amount),
            )

        self.db.delete(tx)

        self.event_repo.append_event(
            budget_profile_id=budget_profile_id,
            event_type="transaction_deleted",
            payload=Transaction.deleted(
                transaction_id=snapshot.id,
                tx_type=snapshot.type,
                amount=snapshot.amount,
                envelope_id=snapshot.envelope_id,
            ),
            actor_user_id=user_id,
        )

        self.db.commit()
        return snapshot


class BulkImportTransactionsUseCase:
    """
    Use case: import parsed statement rows as unassigned transactions

    Negative amounts become EXPENSE, positive INCOME (stored as the
    magnitude); zero amounts and blank descriptions are reported per row.
    Imported rows carry no envelope, so no `spent` aggregate is touched;
    they start counting once assigned through UpdateTransactionUseCase.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        user_id: int,
        budget_profile_id: int,
        rows: Iterable[BulkImportRow],
    ) -> BulkImportResult:
        ensure_user_role(self.db, user_id, budget_profile_id, ANY_MEMBER)

        result = BulkImportResult()
        for row in rows:
            error = self._validate_row(row)
            if error:
                message = f"Failed to import row (Description: {row.description}): {error}"
                logger.warning("Bulk import, profile %s: %s", budget_profile_id, message)
                result.error_count += 1
                result.errors.append(message)
                continue

            amount = Decimal(row.amount)
            self.db.add(TransactionModel(
                budget_profile_id=budget_profile_id,
                envelope_id=None,
                description=row.description.strip(),
                amount=abs(amount),
                date=row.date,
                type=TransactionType.EXPENSE if amount < 0 else TransactionType.INCOME,
            ))
            result.success_count += 1

        self.db.flush()
        self.event_repo.append_event(
            budget_profile_id=budget_profile_id,
            event_type="transactions_imported",
            payload=Transaction.imported(result.success_count, result.error_count),
            actor_user_id=user_id,
        )
        self.db.commit()

        logger.info(
            "Bulk import into profile %s: %d imported, %d failed",
            budget_profile_id, result.success_count, result.error_count,
        )
        return result

    @staticmethod
    def _validate_row(row: BulkImportRow) -> str | None:
        if row.amount is None or Decimal(row.amount) == 0:
            return "Transaction amount cannot be zero"
        if not row.description or not row.description.strip():
            return "Transaction description cannot be empty"
        return None
