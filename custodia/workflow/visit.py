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
"""Interface for scheduling visits."""
import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from custodia.common.constants.custody import PersonStatus, VisitStatus
from custodia.persistence.database.schema.custody import schema
from custodia.persistence.entity import converter, entities
from custodia.workflow import scheduling
from custodia.workflow.exceptions import Conflict, InvalidTransition, ValidationFailed
from custodia.workflow.queries import get_or_raise
from custodia.workflow.scope import Scope, require_authorized

_UPDATABLE_FIELDS = frozenset(
    [
        "visitor_id",
        "relationship_to_person",
        "visit_date",
        "time_start",
        "time_end",
        "purpose",
        "notes",
    ]
)

_ALLOWED_STATUS_CHANGES = {
    VisitStatus.SCHEDULED: frozenset([VisitStatus.COMPLETED, VisitStatus.CANCELLED]),
    VisitStatus.COMPLETED: frozenset(),
    VisitStatus.CANCELLED: frozenset(),
}


def _check_no_conflict(
    session: Session,
    person_id: int,
    visit_date: datetime.date,
    time_start: datetime.time,
    time_end: datetime.time,
    exclude_visit_id: Optional[int] = None,
) -> None:
    if scheduling.has_conflict(
        session, person_id, visit_date, time_start, time_end, exclude_visit_id
    ):
        raise Conflict(
            f"Person [{person_id}] already has a visit scheduled on {visit_date} "
            f"overlapping {time_start}-{time_end}."
        )


class VisitInterface:
    """Contains methods for scheduling and tracking visits."""

    @staticmethod
    def schedule(
        *,
        session: Session,
        scope: Scope,
        person_id: int,
        visitor_id: int,
        relationship_to_person: str,
        visit_date: datetime.date,
        time_start: datetime.time,
        time_end: datetime.time,
        purpose: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> entities.Visit:
        """Schedules a visit for an ACTIVE person. The person row stays locked
        while the conflict check runs, so two overlapping visits cannot both be
        scheduled."""
        scheduling.validate_window(time_start, time_end)
        person = get_or_raise(session, schema.Person, person_id, for_update=True)
        require_authorized(scope, person.facility_id)
        if person.status is not PersonStatus.ACTIVE:
            raise InvalidTransition(
                f"Cannot schedule a visit for person [{person_id}] with status "
                f"{person.status.value}."
            )
        get_or_raise(session, schema.Visitor, visitor_id, for_update=True)
        _check_no_conflict(session, person_id, visit_date, time_start, time_end)

        visit = schema.Visit(
            person_id=person_id,
            visitor_id=visitor_id,
            relationship_to_person=relationship_to_person,
            visit_date=visit_date,
            time_start=time_start,
            time_end=time_end,
            purpose=purpose,
            notes=notes,
            status=VisitStatus.SCHEDULED,
        )
        session.add(visit)
        session.flush()
        return converter.convert(visit)

    @staticmethod
    def update_visit(
        *,
        session: Session,
        scope: Scope,
        visit_id: int,
        changes: Dict[str, Any],
    ) -> entities.Visit:
        """Edits a SCHEDULED visit. A new date or window is checked against the
        person's other scheduled visits."""
        unknown_fields = set(changes) - _UPDATABLE_FIELDS
        if unknown_fields:
            raise ValidationFailed(f"Cannot update visit fields: {sorted(unknown_fields)}")

        visit = VisitInterface._lock_visit(session, scope, visit_id)
        if visit.status is not VisitStatus.SCHEDULED:
            raise InvalidTransition(
                f"Cannot edit visit [{visit_id}] with status {visit.status.value}."
            )

        if "visitor_id" in changes:
            get_or_raise(session, schema.Visitor, changes["visitor_id"])

        visit_date = changes.get("visit_date", visit.visit_date)
        time_start = changes.get("time_start", visit.time_start)
        time_end = changes.get("time_end", visit.time_end)
        if {"visit_date", "time_start", "time_end"} & set(changes):
            scheduling.validate_window(time_start, time_end)
            _check_no_conflict(
                session,
                visit.person_id,
                visit_date,
                time_start,
                time_end,
                exclude_visit_id=visit_id,
            )

        for field, value in changes.items():
            setattr(visit, field, value)
        session.flush()
        return converter.convert(visit)

    @staticmethod
    def update_visit_status(
        *,
        session: Session,
        scope: Scope,
        visit_id: int,
        status: VisitStatus,
        notes: Optional[str] = None,
    ) -> entities.Visit:
        visit = VisitInterface._lock_visit(session, scope, visit_id)
        if status not in _ALLOWED_STATUS_CHANGES[visit.status]:
            raise InvalidTransition(
                f"Cannot move visit [{visit_id}] from {visit.status.value} to "
                f"{status.value}."
            )
        visit.status = status
        if notes:
            visit.notes = notes
        session.flush()
        return converter.convert(visit)

    @staticmethod
    def delete_visit(*, session: Session, scope: Scope, visit_id: int) -> None:
        visit = VisitInterface._lock_visit(session, scope, visit_id)
        if visit.status is VisitStatus.COMPLETED:
            raise InvalidTransition(f"Completed visit [{visit_id}] cannot be deleted.")
        session.delete(visit)
        session.flush()

    @staticmethod
    def get_visit(*, session: Session, scope: Scope, visit_id: int) -> entities.Visit:
        visit = get_or_raise(session, schema.Visit, visit_id)
        require_authorized(scope, visit.person.facility_id)
        return converter.convert(visit)

    @staticmethod
    def get_visits_for_person(
        *, session: Session, scope: Scope, person_id: int
    ) -> List[entities.Visit]:
        person = get_or_raise(session, schema.Person, person_id)
        require_authorized(scope, person.facility_id)
        visits = (
            session.query(schema.Visit)
            .filter(schema.Visit.person_id == person_id)
            .order_by(schema.Visit.visit_date, schema.Visit.time_start)
            .all()
        )
        return converter.convert_all(visits)

    @staticmethod
    def _lock_visit(session: Session, scope: Scope, visit_id: int) -> schema.Visit:
        """Locks the person row and then the visit row, and checks the caller may
        act on the person's facility."""
        visit = get_or_raise(session, schema.Visit, visit_id)
        person = get_or_raise(session, schema.Person, visit.person_id, for_update=True)
        require_authorized(scope, person.facility_id)
        return get_or_raise(session, schema.Visit, visit_id, for_update=True)
