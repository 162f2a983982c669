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
"""Interface for moving a person through their custody lifecycle.

A person is admitted ACTIVE at a facility, may be transferred between
facilities while ACTIVE, and leaves custody exactly once by being released or
recorded as deceased. Terminal statuses are never reverted.
"""
import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from custodia.common.constants.custody import Gender, PersonStatus
from custodia.persistence.database.schema.custody import schema
from custodia.persistence.entity import converter, entities
from custodia.workflow import capacity
from custodia.workflow.exceptions import Forbidden, InvalidTransition, ValidationFailed
from custodia.workflow.queries import check_unique, flush_or_conflict, get_or_raise
from custodia.workflow.scope import (
    Scope,
    require_admin,
    require_authorized,
)

DEFAULT_NATIONALITY = "Sri Lankan"

_UPDATABLE_FIELDS = frozenset(
    [
        "full_name",
        "national_id",
        "case_number",
        "gender",
        "birthdate",
        "nationality",
        "cell_number",
        "expected_release_date",
    ]
)


class PersonInterface:
    """Contains the lifecycle commands for people in custody."""

    @staticmethod
    def admit(
        *,
        session: Session,
        scope: Scope,
        full_name: str,
        national_id: str,
        case_number: str,
        gender: Gender,
        birthdate: datetime.date,
        facility_id: Optional[int] = None,
        nationality: str = DEFAULT_NATIONALITY,
        cell_number: Optional[str] = None,
        admission_date: Optional[datetime.date] = None,
        expected_release_date: Optional[datetime.date] = None,
    ) -> entities.Person:
        """Creates an ACTIVE person at a facility. A global caller chooses the
        facility with |facility_id|; every other caller admits into their own
        facility, and naming any other facility raises Forbidden."""
        target_facility_id = facility_id if scope.is_global else scope.facility_id
        if not scope.is_global and facility_id not in (None, scope.facility_id):
            raise Forbidden(
                f"Caller with role {scope.role.value} may not admit into facility "
                f"[{facility_id}]."
            )
        if target_facility_id is None:
            raise ValidationFailed(
                "A facility is required to admit a person.", field="facility_id"
            )
        require_authorized(scope, target_facility_id)

        admission_date = admission_date or datetime.date.today()
        if (
            expected_release_date is not None
            and expected_release_date < admission_date
        ):
            raise ValidationFailed(
                "Expected release date cannot precede the admission date.",
                field="expected_release_date",
            )

        capacity.check_admission(session, target_facility_id)
        check_unique(session, schema.Person, "national_id", national_id)
        check_unique(session, schema.Person, "case_number", case_number)

        person = schema.Person(
            full_name=full_name,
            national_id=national_id,
            case_number=case_number,
            gender=gender,
            birthdate=birthdate,
            nationality=nationality,
            cell_number=cell_number,
            status=PersonStatus.ACTIVE,
            facility_id=target_facility_id,
            admission_date=admission_date,
            expected_release_date=expected_release_date,
        )
        session.add(person)
        flush_or_conflict(
            session,
            f"Person with national id [{national_id}] or case number "
            f"[{case_number}] already exists.",
        )
        return converter.convert(person)

    @staticmethod
    def update_person(
        *,
        session: Session,
        scope: Scope,
        person_id: int,
        changes: Dict[str, Any],
    ) -> entities.Person:
        """Updates descriptive fields of a person. Status and facility only change
        through the lifecycle commands."""
        unknown_fields = set(changes) - _UPDATABLE_FIELDS
        if unknown_fields:
            raise ValidationFailed(f"Cannot update person fields: {sorted(unknown_fields)}")

        person = get_or_raise(session, schema.Person, person_id, for_update=True)
        require_authorized(scope, person.facility_id)

        for field in ("national_id", "case_number"):
            if field in changes and changes[field] != getattr(person, field):
                check_unique(
                    session, schema.Person, field, changes[field], exclude_id=person_id
                )

        for field, value in changes.items():
            setattr(person, field, value)
        flush_or_conflict(
            session, f"Person [{person_id}] conflicts with an existing person."
        )
        return converter.convert(person)

    @staticmethod
    def transfer(
        *,
        session: Session,
        scope: Scope,
        person_id: int,
        target_facility_id: int,
        reason: Optional[str] = None,
    ) -> entities.Person:
        """Moves an ACTIVE person to another facility with free capacity and
        records the move. The person stays ACTIVE."""
        require_admin(scope)
        person = get_or_raise(session, schema.Person, person_id)
        source_facility_id = person.facility_id
        require_authorized(scope, source_facility_id)

        if person.status is not PersonStatus.ACTIVE:
            raise InvalidTransition(
                f"Cannot transfer person [{person_id}] with status {person.status.value}."
            )
        if source_facility_id == target_facility_id:
            raise InvalidTransition(
                f"Person [{person_id}] is already held at facility [{target_facility_id}]."
            )

        # Facility rows are locked in ascending id order before the person row.
        for facility_id in sorted([source_facility_id, target_facility_id]):
            if facility_id == target_facility_id:
                capacity.check_transfer(session, target_facility_id)
            else:
                capacity.lock_facility(session, facility_id)

        person = get_or_raise(session, schema.Person, person_id, for_update=True)
        if (
            person.status is not PersonStatus.ACTIVE
            or person.facility_id != source_facility_id
        ):
            raise InvalidTransition(
                f"Person [{person_id}] changed while the transfer was being made."
            )

        person.facility_id = target_facility_id
        session.add(
            schema.PersonTransfer(
                person_id=person_id,
                source_facility_id=source_facility_id,
                target_facility_id=target_facility_id,
                transfer_date=datetime.date.today(),
                reason=reason,
            )
        )
        session.flush()
        return converter.convert(person)

    @staticmethod
    def release(
        *,
        session: Session,
        scope: Scope,
        person_id: int,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> entities.Person:
        return PersonInterface._leave_custody(
            session=session,
            scope=scope,
            person_id=person_id,
            status=PersonStatus.RELEASED,
            reason=reason,
            notes=notes,
        )

    @staticmethod
    def decease(
        *,
        session: Session,
        scope: Scope,
        person_id: int,
        notes: Optional[str] = None,
    ) -> entities.Person:
        return PersonInterface._leave_custody(
            session=session,
            scope=scope,
            person_id=person_id,
            status=PersonStatus.DECEASED,
            reason="Deceased",
            notes=notes,
        )

    @staticmethod
    def _leave_custody(
        *,
        session: Session,
        scope: Scope,
        person_id: int,
        status: PersonStatus,
        reason: Optional[str],
        notes: Optional[str],
    ) -> entities.Person:
        require_admin(scope)
        person = get_or_raise(session, schema.Person, person_id, for_update=True)
        require_authorized(scope, person.facility_id)

        if person.status is not PersonStatus.ACTIVE:
            raise InvalidTransition(
                f"Cannot mark person [{person_id}] {status.value}: status is "
                f"already {person.status.value}."
            )

        person.status = status
        person.actual_release_date = datetime.date.today()
        person.release_reason = reason
        person.release_notes = notes
        session.flush()
        return converter.convert(person)

    @staticmethod
    def get_person(
        *, session: Session, scope: Scope, person_id: int
    ) -> entities.Person:
        person = get_or_raise(session, schema.Person, person_id)
        require_authorized(scope, person.facility_id)
        return converter.convert(person)

    @staticmethod
    def get_people(
        *,
        session: Session,
        scope: Scope,
        status: Optional[PersonStatus] = None,
    ) -> List[entities.Person]:
        query = session.query(schema.Person)
        if not scope.is_global:
            query = query.filter(schema.Person.facility_id == scope.facility_id)
        if status is not None:
            query = query.filter(schema.Person.status == status)
        return converter.convert_all(query.order_by(schema.Person.person_id).all())

    @staticmethod
    def get_transfers(
        *, session: Session, scope: Scope, person_id: int
    ) -> List[entities.PersonTransfer]:
        person = get_or_raise(session, schema.Person, person_id)
        require_authorized(scope, person.facility_id)
        transfers = (
            session.query(schema.PersonTransfer)
            .filter(schema.PersonTransfer.person_id == person_id)
            .order_by(schema.PersonTransfer.transfer_id)
            .all()
        )
        return converter.convert_all(transfers)
