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
"""Capacity checks for facilities.

The active population of a facility is always recounted inside the caller's unit
of work after the facility row has been locked, so two concurrent admissions to a
facility with one free place cannot both succeed.
"""
from sqlalchemy import func
from sqlalchemy.orm import Session

from custodia.common.constants.custody import PersonStatus
from custodia.persistence.database.schema.custody import schema
from custodia.workflow.exceptions import (
    CapacityExceeded,
    InvalidTransition,
    ValidationFailed,
)
from custodia.workflow.queries import get_or_raise


def active_count(session: Session, facility_id: int) -> int:
    return (
        session.query(func.count(schema.Person.person_id))
        .filter(
            schema.Person.facility_id == facility_id,
            schema.Person.status == PersonStatus.ACTIVE,
        )
        .scalar()
    )


def lock_facility(session: Session, facility_id: int) -> schema.Facility:
    return get_or_raise(session, schema.Facility, facility_id, for_update=True)


def _check_has_room(session: Session, facility: schema.Facility, action: str) -> None:
    if not facility.is_active:
        raise InvalidTransition(
            f"Cannot {action}: facility [{facility.facility_id}] is not active."
        )
    count = active_count(session, facility.facility_id)
    if count >= facility.capacity:
        raise CapacityExceeded(
            facility_id=facility.facility_id,
            capacity=facility.capacity,
            active_count=count,
            action=action,
        )


def check_admission(session: Session, facility_id: int) -> schema.Facility:
    """Locks the facility and verifies it can take one more person. Returns the
    locked facility."""
    facility = lock_facility(session, facility_id)
    _check_has_room(session, facility, action="admit")
    return facility


def check_transfer(session: Session, target_facility_id: int) -> schema.Facility:
    """Verifies the transfer target can take one more person. The caller may
    already hold the target's lock."""
    facility = lock_facility(session, target_facility_id)
    _check_has_room(session, facility, action="transfer")
    return facility


def check_capacity_update(
    session: Session, facility_id: int, new_capacity: int
) -> schema.Facility:
    """Locks the facility and verifies |new_capacity| still covers its active
    population. Returns the locked facility."""
    if new_capacity < 0:
        raise ValidationFailed(
            f"Capacity must be non-negative, found {new_capacity}.", field="capacity"
        )
    facility = lock_facility(session, facility_id)
    count = active_count(session, facility_id)
    if new_capacity < count:
        raise CapacityExceeded(
            facility_id=facility_id,
            capacity=new_capacity,
            active_count=count,
            action="reduce capacity",
        )
    return facility
