# Recidiviz - a data platform for criminal justice reform
# Copyright (C) 2024 Recidiviz, Inc.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
# =============================================================================
"""Interface for work records and the payments owed for them.

A work record is PENDING until its payment is approved. Once PAID it can no
longer be edited, deleted or approved again.
"""
import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from custodia.common.constants.custody import PaymentStatus, PersonStatus
from custodia.persistence.database.schema.custody import schema
from custodia.persistence.database.sqlalchemy_database_key import SQLAlchemyDatabaseKey
from custodia.persistence.entity import converter, entities
from custodia.workflow import commands
from custodia.workflow.exceptions import InvalidTransition, ValidationFailed
from custodia.workflow.queries import get_or_raise
from custodia.workflow.scope import Scope, require_authorized

MIN_HOURS = Decimal("0.5")
MAX_HOURS = Decimal("24")
MAX_PAYMENT_PER_HOUR = Decimal("1000")

_UPDATABLE_FIELDS = frozenset(
    ["task_description", "work_date", "hours_worked", "payment_amount", "notes"]
)


def validate_work(
    work_date: datetime.date, hours_worked: Decimal, payment_amount: Decimal
) -> None:
    if work_date > datetime.date.today():
        raise ValidationFailed(
            f"Work date {work_date} is in the future.", field="work_date"
        )
    if not MIN_HOURS <= hours_worked <= MAX_HOURS:
        raise ValidationFailed(
            f"Hours worked must be between {MIN_HOURS} and {MAX_HOURS}, found "
            f"{hours_worked}.",
            field="hours_worked",
        )
    if payment_amount < 0:
        raise ValidationFailed(
            f"Payment amount must be non-negative, found {payment_amount}.",
            field="payment_amount",
        )
    if payment_amount > hours_worked * MAX_PAYMENT_PER_HOUR:
        raise ValidationFailed(
            f"Payment amount {payment_amount} exceeds {MAX_PAYMENT_PER_HOUR} per "
            f"hour for {hours_worked} hours.",
            field="payment_amount",
        )


class WorkRecordInterface:
    """Contains methods for recording work and approving payment for it."""

    @staticmethod
    def create_work_record(
        *,
        session: Session,
        scope: Scope,
        person_id: int,
        task_description: str,
        work_date: datetime.date,
        hours_worked: Decimal,
        payment_amount: Decimal = Decimal("0"),
        notes: Optional[str] = None,
    ) -> entities.WorkRecord:
        person = get_or_raise(session, schema.Person, person_id, for_update=True)
        require_authorized(scope, person.facility_id)
        if person.status is not PersonStatus.ACTIVE:
            raise InvalidTransition(
                f"Cannot record work for person [{person_id}] with status "
                f"{person.status.value}."
            )
        hours_worked = Decimal(str(hours_worked))
        payment_amount = Decimal(str(payment_amount))
        validate_work(work_date, hours_worked, payment_amount)

        work_record = schema.WorkRecord(
            person_id=person_id,
            task_description=task_description,
            work_date=work_date,
            hours_worked=hours_worked,
            payment_amount=payment_amount,
            payment_status=PaymentStatus.PENDING,
            notes=notes,
        )
        session.add(work_record)
        session.flush()
        return converter.convert(work_record)

    @staticmethod
    def update_work_record(
        *,
        session: Session,
        scope: Scope,
        work_record_id: int,
        changes: Dict[str, Any],
    ) -> entities.WorkRecord:
        unknown_fields = set(changes) - _UPDATABLE_FIELDS
        if unknown_fields:
            raise ValidationFailed(
                f"Cannot update work record fields: {sorted(unknown_fields)}"
            )
        work_record = WorkRecordInterface._lock_work_record(
            session, scope, work_record_id
        )
        WorkRecordInterface._check_unpaid(work_record, "edited")

        changes = dict(changes)
        for field in ("hours_worked", "payment_amount"):
            if field in changes:
                changes[field] = Decimal(str(changes[field]))
        validate_work(
            changes.get("work_date", work_record.work_date),
            changes.get("hours_worked", Decimal(work_record.hours_worked)),
            changes.get("payment_amount", Decimal(work_record.payment_amount)),
        )

        for field, value in changes.items():
            setattr(work_record, field, value)
        session.flush()
        return converter.convert(work_record)

    @staticmethod
    def delete_work_record(
        *, session: Session, scope: Scope, work_record_id: int
    ) -> None:
        work_record = WorkRecordInterface._lock_work_record(
            session, scope, work_record_id
        )
        WorkRecordInterface._check_unpaid(work_record, "deleted")
        session.delete(work_record)
        session.flush()

    @staticmethod
    def approve_payment(
        *,
        session: Session,
        scope: Scope,
        work_record_id: int,
        payment_date: Optional[datetime.date] = None,
    ) -> entities.WorkRecord:
        work_record = WorkRecordInterface._lock_work_record(
            session, scope, work_record_id
        )
        WorkRecordInterface._check_unpaid(work_record, "approved")
        work_record.payment_status = PaymentStatus.PAID
        work_record.payment_date = payment_date or datetime.date.today()
        session.flush()
        return converter.convert(work_record)

    @staticmethod
    def approve_payments(
        *,
        database_key: SQLAlchemyDatabaseKey,
        scope: Scope,
        work_record_ids: Sequence[int],
        payment_date: Optional[datetime.date] = None,
    ) -> entities.BulkResult:
        """Approves each payment in its own unit of work and reports the outcome
        of every record."""
        return commands.run_bulk_command(
            database_key,
            "approve_payment",
            work_record_ids,
            lambda session, record_id: WorkRecordInterface.approve_payment(
                session=session,
                scope=scope,
                work_record_id=record_id,
                payment_date=payment_date,
            ),
        )

    @staticmethod
    def get_work_records_for_person(
        *,
        session: Session,
        scope: Scope,
        person_id: int,
        payment_status: Optional[PaymentStatus] = None,
    ) -> List[entities.WorkRecord]:
        person = get_or_raise(session, schema.Person, person_id)
        require_authorized(scope, person.facility_id)
        query = session.query(schema.WorkRecord).filter(
            schema.WorkRecord.person_id == person_id
        )
        if payment_status is not None:
            query = query.filter(schema.WorkRecord.payment_status == payment_status)
        return converter.convert_all(
            query.order_by(
                schema.WorkRecord.work_date.desc(),
                schema.WorkRecord.work_record_id.desc(),
            ).all()
        )

    @staticmethod
    def _check_unpaid(work_record: schema.WorkRecord, action: str) -> None:
        if work_record.payment_status is PaymentStatus.PAID:
            raise InvalidTransition(
                f"Work record [{work_record.work_record_id}] has been paid and "
                f"cannot be {action}."
            )

    @staticmethod
    def _lock_work_record(
        session: Session, scope: Scope, work_record_id: int
    ) -> schema.WorkRecord:
        work_record = get_or_raise(session, schema.WorkRecord, work_record_id)
        person = get_or_raise(
            session, schema.Person, work_record.person_id, for_update=True
        )
        require_authorized(scope, person.facility_id)
        return get_or_raise(
            session, schema.WorkRecord, work_record_id, for_update=True
        )
