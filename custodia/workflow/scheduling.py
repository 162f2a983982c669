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
"""Detects overlapping visits for a person.

Visit windows are half-open: a visit ending at 09:30 does not overlap one
starting at 09:30. Only SCHEDULED visits on the same date take part.
"""
import datetime
from typing import Optional

from sqlalchemy.orm import Session

from custodia.common.constants.custody import VisitStatus
from custodia.persistence.database.schema.custody import schema
from custodia.workflow.exceptions import ValidationFailed

MIN_VISIT_MINUTES = 15
MAX_VISIT_MINUTES = 120


def _duration(time_start: datetime.time, time_end: datetime.time) -> datetime.timedelta:
    day = datetime.date.min
    return datetime.datetime.combine(day, time_end) - datetime.datetime.combine(
        day, time_start
    )


def windows_overlap(
    start_a: datetime.time,
    end_a: datetime.time,
    start_b: datetime.time,
    end_b: datetime.time,
) -> bool:
    return start_a < end_b and start_b < end_a


def validate_window(time_start: datetime.time, time_end: datetime.time) -> None:
    if time_end <= time_start:
        raise ValidationFailed(
            f"Visit end time {time_end} must be after its start time {time_start}.",
            field="time_end",
        )
    duration = _duration(time_start, time_end)
    if not (
        datetime.timedelta(minutes=MIN_VISIT_MINUTES)
        <= duration
        <= datetime.timedelta(minutes=MAX_VISIT_MINUTES)
    ):
        raise ValidationFailed(
            f"Visits must last between {MIN_VISIT_MINUTES} and {MAX_VISIT_MINUTES} "
            f"minutes, found {duration}.",
            field="time_end",
        )


def has_conflict(
    session: Session,
    person_id: int,
    visit_date: datetime.date,
    time_start: datetime.time,
    time_end: datetime.time,
    exclude_visit_id: Optional[int] = None,
) -> bool:
    """Returns True if another SCHEDULED visit for the person on |visit_date|
    overlaps [time_start, time_end)."""
    query = session.query(schema.Visit).filter(
        schema.Visit.person_id == person_id,
        schema.Visit.visit_date == visit_date,
        schema.Visit.status == VisitStatus.SCHEDULED,
    )
    if exclude_visit_id is not None:
        query = query.filter(schema.Visit.visit_id != exclude_visit_id)

    return any(
        windows_overlap(time_start, time_end, visit.time_start, visit.time_end)
        for visit in query.all()
    )
