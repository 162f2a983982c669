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
"""Domain entities returned by the workflow layer.

Note: These classes mirror the SQL Alchemy ORM objects but are kept separate.
They are plain immutable data, safe to hand to callers after the session that
produced them has been closed.
"""
import datetime
from decimal import Decimal
from typing import List, Optional

import attr

from custodia.common import attr_validators
from custodia.common.constants.custody import (
    AdjustmentStatus,
    BehaviourRating,
    BehaviourType,
    Gender,
    PaymentStatus,
    PersonStatus,
    SeverityLevel,
    VisitStatus,
)


@attr.s(frozen=True)
class Facility:
    facility_id: int = attr.ib(validator=attr_validators.is_int)
    name: str = attr.ib(validator=attr_validators.is_str)
    location: str = attr.ib(validator=attr_validators.is_str)
    capacity: int = attr.ib(validator=attr_validators.is_non_negative_int)
    is_active: bool = attr.ib(validator=attr_validators.is_bool)
    address: Optional[str] = attr.ib(default=None)
    superintendent: Optional[str] = attr.ib(default=None)
    contact_number: Optional[str] = attr.ib(default=None)
    email: Optional[str] = attr.ib(default=None)
    established_date: Optional[datetime.date] = attr.ib(default=None)


@attr.s(frozen=True)
class Person:
    person_id: int = attr.ib(validator=attr_validators.is_int)
    full_name: str = attr.ib(validator=attr_validators.is_str)
    national_id: str = attr.ib(validator=attr_validators.is_str)
    case_number: str = attr.ib(validator=attr_validators.is_str)
    gender: Gender = attr.ib(validator=attr.validators.instance_of(Gender))
    birthdate: datetime.date = attr.ib(validator=attr_validators.is_date)
    nationality: str = attr.ib(validator=attr_validators.is_str)
    status: PersonStatus = attr.ib(
        validator=attr.validators.instance_of(PersonStatus)
    )
    admission_date: datetime.date = attr.ib(validator=attr_validators.is_date)
    facility_id: Optional[int] = attr.ib(default=None)
    cell_number: Optional[str] = attr.ib(default=None)
    expected_release_date: Optional[datetime.date] = attr.ib(default=None)
    actual_release_date: Optional[datetime.date] = attr.ib(default=None)
    release_reason: Optional[str] = attr.ib(default=None)
    release_notes: Optional[str] = attr.ib(default=None)


@attr.s(frozen=True)
class PersonTransfer:
    transfer_id: int = attr.ib(validator=attr_validators.is_int)
    person_id: int = attr.ib(validator=attr_validators.is_int)
    source_facility_id: int = attr.ib(validator=attr_validators.is_int)
    target_facility_id: int = attr.ib(validator=attr_validators.is_int)
    transfer_date: datetime.date = attr.ib(validator=attr_validators.is_date)
    reason: Optional[str] = attr.ib(default=None)


@attr.s(frozen=True)
class BehaviourRecord:
    behaviour_record_id: int = attr.ib(validator=attr_validators.is_int)
    person_id: int = attr.ib(validator=attr_validators.is_int)
    behaviour_type: BehaviourType = attr.ib(
        validator=attr.validators.instance_of(BehaviourType)
    )
    severity: SeverityLevel = attr.ib(
        validator=attr.validators.instance_of(SeverityLevel)
    )
    incident_date: datetime.date = attr.ib(validator=attr_validators.is_date)
    description: str = attr.ib(validator=attr_validators.is_str)
    sentence_adjustment_days: int = attr.ib(validator=attr_validators.is_int)
    adjustment_status: AdjustmentStatus = attr.ib(
        validator=attr.validators.instance_of(AdjustmentStatus)
    )
    action_taken: Optional[str] = attr.ib(default=None)
    witness_name: Optional[str] = attr.ib(default=None)
    adjustment_approved_at: Optional[datetime.datetime] = attr.ib(default=None)
    notes: Optional[str] = attr.ib(default=None)


@attr.s(frozen=True)
class AdjustmentResult:
    """The outcome of approving a sentence adjustment. |previous_release_date|
    and |new_release_date| are both None when the person has no expected release
    date to shift."""

    record: BehaviourRecord = attr.ib()
    adjustment_days: int = attr.ib(validator=attr_validators.is_int)
    previous_release_date: Optional[datetime.date] = attr.ib(
        validator=attr_validators.is_opt_date
    )
    new_release_date: Optional[datetime.date] = attr.ib(
        validator=attr_validators.is_opt_date
    )


@attr.s(frozen=True)
class BehaviourScore:
    person_id: int = attr.ib(validator=attr_validators.is_int)
    score: int = attr.ib(validator=attr_validators.is_int)
    rating: BehaviourRating = attr.ib(
        validator=attr.validators.instance_of(BehaviourRating)
    )
    period_start: datetime.date = attr.ib(validator=attr_validators.is_date)
    period_end: datetime.date = attr.ib(validator=attr_validators.is_date)
    total_records: int = attr.ib(validator=attr_validators.is_int)
    positive_points: int = attr.ib(validator=attr_validators.is_int)
    negative_points: int = attr.ib(validator=attr_validators.is_int)


@attr.s(frozen=True)
class WorkRecord:
    work_record_id: int = attr.ib(validator=attr_validators.is_int)
    person_id: int = attr.ib(validator=attr_validators.is_int)
    task_description: str = attr.ib(validator=attr_validators.is_str)
    work_date: datetime.date = attr.ib(validator=attr_validators.is_date)
    hours_worked: Decimal = attr.ib(converter=Decimal)
    payment_amount: Decimal = attr.ib(converter=Decimal)
    payment_status: PaymentStatus = attr.ib(
        validator=attr.validators.instance_of(PaymentStatus)
    )
    payment_date: Optional[datetime.date] = attr.ib(default=None)
    notes: Optional[str] = attr.ib(default=None)


@attr.s(frozen=True)
class Visitor:
    visitor_id: int = attr.ib(validator=attr_validators.is_int)
    full_name: str = attr.ib(validator=attr_validators.is_str)
    national_id: str = attr.ib(validator=attr_validators.is_str)
    mobile_number: Optional[str] = attr.ib(default=None)
    address: Optional[str] = attr.ib(default=None)


@attr.s(frozen=True)
class Visit:
    visit_id: int = attr.ib(validator=attr_validators.is_int)
    person_id: int = attr.ib(validator=attr_validators.is_int)
    visitor_id: int = attr.ib(validator=attr_validators.is_int)
    relationship_to_person: str = attr.ib(validator=attr_validators.is_str)
    visit_date: datetime.date = attr.ib(validator=attr_validators.is_date)
    time_start: datetime.time = attr.ib(validator=attr_validators.is_time)
    time_end: datetime.time = attr.ib(validator=attr_validators.is_time)
    status: VisitStatus = attr.ib(validator=attr.validators.instance_of(VisitStatus))
    purpose: Optional[str] = attr.ib(default=None)
    notes: Optional[str] = attr.ib(default=None)


@attr.s(frozen=True)
class BulkOutcome:
    """The result of one record within a bulk command."""

    record_id: int = attr.ib(validator=attr_validators.is_int)
    succeeded: bool = attr.ib(validator=attr_validators.is_bool)
    error_code: Optional[str] = attr.ib(default=None)
    error_description: Optional[str] = attr.ib(default=None)


@attr.s(frozen=True)
class BulkResult:
    outcomes: List[BulkOutcome] = attr.ib(
        validator=attr_validators.is_list_of(BulkOutcome)
    )

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.succeeded)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded
