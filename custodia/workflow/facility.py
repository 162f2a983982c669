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
"""Interface for working with the Facility model."""
import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from custodia.persistence.database.schema.custody import schema
from custodia.persistence.entity import converter, entities
from custodia.workflow import capacity
from custodia.workflow.exceptions import InvalidTransition, ValidationFailed
from custodia.workflow.queries import check_unique, flush_or_conflict, get_or_raise
from custodia.workflow.scope import Scope, require_authorized, require_global

_UPDATABLE_FIELDS = frozenset(
    [
        "name",
        "location",
        "address",
        "capacity",
        "superintendent",
        "contact_number",
        "email",
        "established_date",
    ]
)


class FacilityInterface:
    """Contains methods for creating, updating and reading facilities."""

    @staticmethod
    def create_facility(
        *,
        session: Session,
        scope: Scope,
        name: str,
        location: str,
        capacity: int = 0,
        address: Optional[str] = None,
        superintendent: Optional[str] = None,
        contact_number: Optional[str] = None,
        email: Optional[str] = None,
        established_date: Optional[datetime.date] = None,
    ) -> entities.Facility:
        require_global(scope)
        if capacity < 0:
            raise ValidationFailed(
                f"Capacity must be non-negative, found {capacity}.", field="capacity"
            )
        check_unique(session, schema.Facility, "name", name)

        facility = schema.Facility(
            name=name,
            location=location,
            capacity=capacity,
            address=address,
            superintendent=superintendent,
            contact_number=contact_number,
            email=email,
            established_date=established_date,
            is_active=True,
        )
        session.add(facility)
        flush_or_conflict(session, f"Facility with name [{name}] already exists.")
        return converter.convert(facility)

    @staticmethod
    def update_facility(
        *,
        session: Session,
        scope: Scope,
        facility_id: int,
        changes: Dict[str, Any],
    ) -> entities.Facility:
        """Applies |changes| to the facility. A capacity change is refused when it
        would leave the facility holding more active people than its capacity."""
        require_global(scope)
        unknown_fields = set(changes) - _UPDATABLE_FIELDS
        if unknown_fields:
            raise ValidationFailed(
                f"Cannot update facility fields: {sorted(unknown_fields)}"
            )

        if "capacity" in changes:
            facility = capacity.check_capacity_update(
                session, facility_id, changes["capacity"]
            )
        else:
            facility = get_or_raise(session, schema.Facility, facility_id)

        if "name" in changes and changes["name"] != facility.name:
            check_unique(
                session, schema.Facility, "name", changes["name"], exclude_id=facility_id
            )

        for field, value in changes.items():
            setattr(facility, field, value)
        flush_or_conflict(
            session, f"Facility with name [{facility.name}] already exists."
        )
        return converter.convert(facility)

    @staticmethod
    def deactivate_facility(
        *, session: Session, scope: Scope, facility_id: int
    ) -> entities.Facility:
        """Marks the facility inactive. Facilities are never deleted, and a
        facility that still holds active people cannot be deactivated."""
        require_global(scope)
        facility = capacity.lock_facility(session, facility_id)
        if not facility.is_active:
            raise InvalidTransition(f"Facility [{facility_id}] is already inactive.")
        count = capacity.active_count(session, facility_id)
        if count > 0:
            raise InvalidTransition(
                f"Cannot deactivate facility [{facility_id}] while it holds "
                f"{count} active people."
            )
        facility.is_active = False
        session.flush()
        return converter.convert(facility)

    @staticmethod
    def get_facility(
        *, session: Session, scope: Scope, facility_id: int
    ) -> entities.Facility:
        facility = get_or_raise(session, schema.Facility, facility_id)
        require_authorized(scope, facility_id)
        return converter.convert(facility)

    @staticmethod
    def get_facilities(*, session: Session, scope: Scope) -> List[entities.Facility]:
        query = session.query(schema.Facility)
        if not scope.is_global:
            query = query.filter(schema.Facility.facility_id == scope.facility_id)
        return converter.convert_all(query.order_by(schema.Facility.name).all())

    @staticmethod
    def get_active_population(
        *, session: Session, scope: Scope, facility_id: int
    ) -> int:
        get_or_raise(session, schema.Facility, facility_id)
        require_authorized(scope, facility_id)
        return capacity.active_count(session, facility_id)
