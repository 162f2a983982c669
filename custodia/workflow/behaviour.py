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
"""Interface for behaviour records and the sentence adjustments they propose.

A record with a nonzero sentence_adjustment_days starts PENDING and is either
APPROVED, which shifts the person's expected release date by that many days
exactly once, or REJECTED. Positive behaviour may only shorten a sentence and
negative behaviour may only lengthen it.
"""
import datetime
from typing import Any, Dict, List, Optional, Sequence

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from custodia.common.constants.custody import (
    AdjustmentStatus,
    BehaviourRating,
    BehaviourType,
    PersonStatus,
    SeverityLevel,
)
from custodia.persistence.database.schema.custody import schema
from custodia.persistence.database.sqlalchemy_database_key import SQLAlchemyDatabaseKey
from custodia.persistence.entity import converter, entities
from custodia.workflow import commands
from custodia.workflow.exceptions import InvalidTransition, ValidationFailed
from custodia.workflow.queries import get_or_raise
from custodia.workflow.scope import Scope, require_authorized

MAX_ADJUSTMENT_DAYS = 365

BASE_SCORE = 100
MIN_SCORE = 0
MAX_SCORE = 150

SCORE_WEIGHTS = {
    BehaviourType.POSITIVE: {
        SeverityLevel.MINOR: 5,
        SeverityLevel.MODERATE: 10,
        SeverityLevel.SEVERE: 15,
    },
    BehaviourType.NEGATIVE: {
        SeverityLevel.MINOR: -5,
        SeverityLevel.MODERATE: -10,
        SeverityLevel.SEVERE: -20,
    },
}

_UPDATABLE_FIELDS = frozenset(
    [
        "behaviour_type",
        "severity",
        "incident_date",
        "description",
        "action_taken",
        "witness_name",
        "sentence_adjustment_days",
        "notes",
    ]
)


def validate_adjustment(behaviour_type: BehaviourType, adjustment_days: int) -> None:
    if abs(adjustment_days) > MAX_ADJUSTMENT_DAYS:
        raise ValidationFailed(
            f"Sentence adjustment must be within {MAX_ADJUSTMENT_DAYS} days, "
            f"found {adjustment_days}.",
            field="sentence_adjustment_days",
        )
    if behaviour_type is BehaviourType.POSITIVE and adjustment_days > 0:
        raise ValidationFailed(
            "Positive behaviour cannot lengthen a sentence.",
            field="sentence_adjustment_days",
        )
    if behaviour_type is BehaviourType.NEGATIVE and adjustment_days < 0:
        raise ValidationFailed(
            "Negative behaviour cannot shorten a sentence.",
            field="sentence_adjustment_days",
        )


def _validate_incident_date(incident_date: datetime.date) -> None:
    if incident_date > datetime.date.today():
        raise ValidationFailed(
            f"Incident date {incident_date} is in the future.", field="incident_date"
        )


def _initial_status(adjustment_days: int) -> AdjustmentStatus:
    if adjustment_days != 0:
        return AdjustmentStatus.PENDING
    return AdjustmentStatus.NOT_APPLICABLE


def rating_for_score(score: int) -> BehaviourRating:
    if score >= 120:
        return BehaviourRating.EXCELLENT
    if score >= 100:
        return BehaviourRating.GOOD
    if score >= 80:
        return BehaviourRating.FAIR
    return BehaviourRating.POOR


class BehaviourRecordInterface:
    """Contains methods for recording behaviour and deciding on the sentence
    adjustments it proposes."""

    @staticmethod
    def propose(
        *,
        session: Session,
        scope: Scope,
        person_id: int,
        behaviour_type: BehaviourType,
        severity: SeverityLevel,
        incident_date: datetime.date,
        description: str,
        sentence_adjustment_days: int = 0,
        action_taken: Optional[str] = None,
        witness_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> entities.BehaviourRecord:
        """Records behaviour for an ACTIVE person. The record is PENDING when it
        proposes a sentence adjustment and NOT_APPLICABLE otherwise."""
        person = get_or_raise(session, schema.Person, person_id, for_update=True)
        require_authorized(scope, person.facility_id)
        if person.status is not PersonStatus.ACTIVE:
            raise InvalidTransition(
                f"Cannot record behaviour for person [{person_id}] with status "
                f"{person.status.value}."
            )
        validate_adjustment(behaviour_type, sentence_adjustment_days)
        _validate_incident_date(incident_date)

        record = schema.BehaviourRecord(
            person_id=person_id,
            behaviour_type=behaviour_type,
            severity=severity,
            incident_date=incident_date,
            description=description,
            action_taken=action_taken,
            witness_name=witness_name,
            sentence_adjustment_days=sentence_adjustment_days,
            adjustment_status=_initial_status(sentence_adjustment_days),
            notes=notes,
        )
        session.add(record)
        session.flush()
        return converter.convert(record)

    @staticmethod
    def update_record(
        *,
        session: Session,
        scope: Scope,
        behaviour_record_id: int,
        changes: Dict[str, Any],
    ) -> entities.BehaviourRecord:
        """Edits a record that has not been approved. The adjustment status never
        changes here: only a PENDING record may change its proposed days, and
        they must stay non-zero."""
        unknown_fields = set(changes) - _UPDATABLE_FIELDS
        if unknown_fields:
            raise ValidationFailed(
                f"Cannot update behaviour record fields: {sorted(unknown_fields)}"
            )

        record = BehaviourRecordInterface._lock_record(
            session, scope, behaviour_record_id
        )
        if record.adjustment_status is AdjustmentStatus.APPROVED:
            raise InvalidTransition(
                f"Behaviour record [{behaviour_record_id}] has an approved "
                f"adjustment and cannot be edited."
            )

        behaviour_type = changes.get("behaviour_type", record.behaviour_type)
        adjustment_days = changes.get(
            "sentence_adjustment_days", record.sentence_adjustment_days
        )
        validate_adjustment(behaviour_type, adjustment_days)
        if "incident_date" in changes:
            _validate_incident_date(changes["incident_date"])

        if adjustment_days != record.sentence_adjustment_days:
            if record.adjustment_status is not AdjustmentStatus.PENDING:
                raise InvalidTransition(
                    f"Cannot change the proposed days of behaviour record "
                    f"[{behaviour_record_id}] with adjustment status "
                    f"{record.adjustment_status.value}."
                )
            if adjustment_days == 0:
                raise InvalidTransition(
                    f"Cannot withdraw the pending adjustment of behaviour record "
                    f"[{behaviour_record_id}]; reject it instead."
                )

        for field, value in changes.items():
            setattr(record, field, value)
        session.flush()
        return converter.convert(record)

    @staticmethod
    def delete_record(
        *, session: Session, scope: Scope, behaviour_record_id: int
    ) -> None:
        record = BehaviourRecordInterface._lock_record(
            session, scope, behaviour_record_id
        )
        if record.adjustment_status is AdjustmentStatus.APPROVED:
            raise InvalidTransition(
                f"Behaviour record [{behaviour_record_id}] has an approved "
                f"adjustment and cannot be deleted."
            )
        session.delete(record)
        session.flush()

    @staticmethod
    def approve(
        *,
        session: Session,
        scope: Scope,
        behaviour_record_id: int,
        notes: Optional[str] = None,
    ) -> entities.AdjustmentResult:
        """Approves a PENDING adjustment and shifts the person's expected release
        date by its days. A person without an expected release date is left
        unchanged. Approving anything but a PENDING record raises
        InvalidTransition, so the shift is applied at most once."""
        record = BehaviourRecordInterface._lock_record(
            session, scope, behaviour_record_id
        )
        if record.adjustment_status is not AdjustmentStatus.PENDING:
            raise InvalidTransition(
                f"Cannot approve behaviour record [{behaviour_record_id}] with "
                f"adjustment status {record.adjustment_status.value}."
            )
        if record.sentence_adjustment_days == 0:
            raise InvalidTransition(
                f"Behaviour record [{behaviour_record_id}] proposes no adjustment."
            )

        person = record.person
        previous_release_date = person.expected_release_date
        new_release_date = None
        if previous_release_date is not None:
            new_release_date = previous_release_date + datetime.timedelta(
                days=record.sentence_adjustment_days
            )
            person.expected_release_date = new_release_date

        record.adjustment_status = AdjustmentStatus.APPROVED
        record.adjustment_approved_at = datetime.datetime.now()
        if notes:
            record.notes = notes
        session.flush()
        return entities.AdjustmentResult(
            record=converter.convert(record),
            adjustment_days=record.sentence_adjustment_days,
            previous_release_date=previous_release_date,
            new_release_date=new_release_date,
        )

    @staticmethod
    def reject(
        *,
        session: Session,
        scope: Scope,
        behaviour_record_id: int,
        reason: Optional[str] = None,
    ) -> entities.BehaviourRecord:
        record = BehaviourRecordInterface._lock_record(
            session, scope, behaviour_record_id
        )
        if record.adjustment_status is not AdjustmentStatus.PENDING:
            raise InvalidTransition(
                f"Cannot reject behaviour record [{behaviour_record_id}] with "
                f"adjustment status {record.adjustment_status.value}."
            )

        record.adjustment_status = AdjustmentStatus.REJECTED
        if reason:
            record.notes = f"REJECTION REASON: {reason}" + (
                f"\n\n{record.notes}" if record.notes else ""
            )
        session.flush()
        return converter.convert(record)

    @staticmethod
    def approve_many(
        *,
        database_key: SQLAlchemyDatabaseKey,
        scope: Scope,
        behaviour_record_ids: Sequence[int],
    ) -> entities.BulkResult:
        """Approves each record in its own unit of work, so one failure does not
        undo the approvals before it."""
        return commands.run_bulk_command(
            database_key,
            "approve_adjustment",
            behaviour_record_ids,
            lambda session, record_id: BehaviourRecordInterface.approve(
                session=session, scope=scope, behaviour_record_id=record_id
            ),
        )

    @staticmethod
    def get_record(
        *, session: Session, scope: Scope, behaviour_record_id: int
    ) -> entities.BehaviourRecord:
        record = get_or_raise(session, schema.BehaviourRecord, behaviour_record_id)
        require_authorized(scope, record.person.facility_id)
        return converter.convert(record)

    @staticmethod
    def get_records_for_person(
        *, session: Session, scope: Scope, person_id: int
    ) -> List[entities.BehaviourRecord]:
        person = get_or_raise(session, schema.Person, person_id)
        require_authorized(scope, person.facility_id)
        records = (
            session.query(schema.BehaviourRecord)
            .filter(schema.BehaviourRecord.person_id == person_id)
            .order_by(
                schema.BehaviourRecord.incident_date.desc(),
                schema.BehaviourRecord.behaviour_record_id.desc(),
            )
            .all()
        )
        return converter.convert_all(records)

    @staticmethod
    def get_pending_adjustments(
        *, session: Session, scope: Scope
    ) -> List[entities.BehaviourRecord]:
        """Returns the PENDING records visible to |scope|, oldest incident first."""
        query = (
            session.query(schema.BehaviourRecord)
            .join(schema.Person)
            .filter(
                schema.BehaviourRecord.adjustment_status == AdjustmentStatus.PENDING
            )
        )
        if not scope.is_global:
            query = query.filter(schema.Person.facility_id == scope.facility_id)
        records = query.order_by(
            schema.BehaviourRecord.incident_date,
            schema.BehaviourRecord.behaviour_record_id,
        ).all()
        return converter.convert_all(records)

    @staticmethod
    def get_behaviour_score(
        *,
        session: Session,
        scope: Scope,
        person_id: int,
        months: int = 6,
    ) -> entities.BehaviourScore:
        """Scores the behaviour recorded in the last |months| months. Every person
        starts at 100; each record adds or removes points by type and severity and
        the total is clamped to [0, 150]."""
        person = get_or_raise(session, schema.Person, person_id)
        require_authorized(scope, person.facility_id)

        period_end = datetime.date.today()
        period_start = period_end - relativedelta(months=months)
        records = (
            session.query(schema.BehaviourRecord)
            .filter(
                schema.BehaviourRecord.person_id == person_id,
                schema.BehaviourRecord.incident_date >= period_start,
                schema.BehaviourRecord.incident_date <= period_end,
            )
            .all()
        )

        positive_points = 0
        negative_points = 0
        for record in records:
            points = SCORE_WEIGHTS[record.behaviour_type][record.severity]
            if points > 0:
                positive_points += points
            else:
                negative_points += points

        score = max(
            MIN_SCORE, min(MAX_SCORE, BASE_SCORE + positive_points + negative_points)
        )
        return entities.BehaviourScore(
            person_id=person_id,
            score=score,
            rating=rating_for_score(score),
            period_start=period_start,
            period_end=period_end,
            total_records=len(records),
            positive_points=positive_points,
            negative_points=negative_points,
        )

    @staticmethod
    def _lock_record(
        session: Session, scope: Scope, behaviour_record_id: int
    ) -> schema.BehaviourRecord:
        """Locks the person row and then the record row, and checks the caller may
        act on the person's facility."""
        record = get_or_raise(session, schema.BehaviourRecord, behaviour_record_id)
        person = get_or_raise(
            session, schema.Person, record.person_id, for_update=True
        )
        require_authorized(scope, person.facility_id)
        return get_or_raise(
            session, schema.BehaviourRecord, behaviour_record_id, for_update=True
        )
