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
"""Define the ORM schema objects that map directly to the custody database.

The below schema uses only generic SQLAlchemy types, and therefore should be
portable between database implementations.

Rows that guard shared resources are locked with SELECT ... FOR UPDATE by the
workflow layer, always in this order: facility rows in ascending id order, then
the person row, then the visitor row, then any behaviour record, visit or work
record row.
"""
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import DeclarativeMeta, declarative_base, relationship

from custodia.common.constants.custody import (
    AdjustmentStatus,
    BehaviourType,
    Gender,
    PaymentStatus,
    PersonStatus,
    SeverityLevel,
    VisitStatus,
)
from custodia.persistence.database.database_entity import DatabaseEntity

# Base class for all table classes
CustodyBase: DeclarativeMeta = declarative_base()

# SQLAlchemy enums. Created separately from the tables so they can be shared.

gender = Enum(Gender, name="gender")

person_status = Enum(PersonStatus, name="person_status")

behaviour_type = Enum(BehaviourType, name="behaviour_type")

severity_level = Enum(SeverityLevel, name="severity_level")

adjustment_status = Enum(AdjustmentStatus, name="adjustment_status")

payment_status = Enum(PaymentStatus, name="payment_status")

visit_status = Enum(VisitStatus, name="visit_status")


class Facility(CustodyBase, DatabaseEntity):
    """Represents a facility that holds people in custody"""

    __tablename__ = "facility"

    __table_args__ = (
        CheckConstraint("capacity >= 0", name="facility_capacity_non_negative"),
    )

    facility_id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    location = Column(String(255), nullable=False)
    address = Column(Text)
    capacity = Column(Integer, nullable=False, default=0)
    superintendent = Column(String(255))
    contact_number = Column(String(32))
    email = Column(String(255))
    established_date = Column(Date)
    is_active = Column(Boolean, nullable=False, default=True)


class Person(CustodyBase, DatabaseEntity):
    """Represents a person held in custody"""

    __tablename__ = "person"

    __table_args__ = (
        CheckConstraint(
            "status != 'ACTIVE' OR facility_id IS NOT NULL",
            name="active_person_has_facility",
        ),
    )

    person_id = Column(Integer, primary_key=True)
    full_name = Column(String(255), nullable=False, index=True)
    national_id = Column(String(32), nullable=False, unique=True)
    case_number = Column(String(64), nullable=False, unique=True)
    gender = Column(gender, nullable=False)
    birthdate = Column(Date, nullable=False)
    nationality = Column(String(64), nullable=False, default="Sri Lankan")
    cell_number = Column(String(32))
    status = Column(person_status, nullable=False, default=PersonStatus.ACTIVE)
    facility_id = Column(
        Integer, ForeignKey("facility.facility_id"), nullable=True, index=True
    )
    admission_date = Column(Date, nullable=False)
    expected_release_date = Column(Date)
    actual_release_date = Column(Date)
    release_reason = Column(Text)
    release_notes = Column(Text)

    facility = relationship("Facility")


class PersonTransfer(CustodyBase, DatabaseEntity):
    """Records one committed move of a person between facilities"""

    __tablename__ = "person_transfer"

    transfer_id = Column(Integer, primary_key=True)
    person_id = Column(
        Integer, ForeignKey("person.person_id"), nullable=False, index=True
    )
    source_facility_id = Column(
        Integer, ForeignKey("facility.facility_id"), nullable=False
    )
    target_facility_id = Column(
        Integer, ForeignKey("facility.facility_id"), nullable=False
    )
    transfer_date = Column(Date, nullable=False)
    reason = Column(Text)


class BehaviourRecord(CustodyBase, DatabaseEntity):
    """Represents an incident in a person's behaviour history, optionally
    proposing a sentence adjustment"""

    __tablename__ = "behaviour_record"

    __table_args__ = (
        CheckConstraint(
            "sentence_adjustment_days BETWEEN -365 AND 365",
            name="behaviour_record_adjustment_days_range",
        ),
    )

    behaviour_record_id = Column(Integer, primary_key=True)
    person_id = Column(
        Integer, ForeignKey("person.person_id"), nullable=False, index=True
    )
    behaviour_type = Column(behaviour_type, nullable=False)
    severity = Column(severity_level, nullable=False)
    incident_date = Column(Date, nullable=False)
    description = Column(Text, nullable=False)
    action_taken = Column(Text)
    witness_name = Column(String(255))
    sentence_adjustment_days = Column(Integer, nullable=False, default=0)
    adjustment_status = Column(
        adjustment_status, nullable=False, default=AdjustmentStatus.NOT_APPLICABLE
    )
    adjustment_approved_at = Column(DateTime)
    notes = Column(Text)

    person = relationship("Person")


class WorkRecord(CustodyBase, DatabaseEntity):
    """Represents a unit of work done by a person and the payment owed for it"""

    __tablename__ = "work_record"

    __table_args__ = (
        CheckConstraint(
            "hours_worked >= 0.5 AND hours_worked <= 24",
            name="work_record_hours_range",
        ),
        CheckConstraint(
            "payment_amount >= 0", name="work_record_payment_non_negative"
        ),
    )

    work_record_id = Column(Integer, primary_key=True)
    person_id = Column(
        Integer, ForeignKey("person.person_id"), nullable=False, index=True
    )
    task_description = Column(Text, nullable=False)
    work_date = Column(Date, nullable=False)
    hours_worked = Column(Numeric(4, 2), nullable=False)
    payment_amount = Column(Numeric(10, 2), nullable=False, default=0)
    payment_status = Column(
        payment_status, nullable=False, default=PaymentStatus.PENDING
    )
    payment_date = Column(Date)
    notes = Column(Text)

    person = relationship("Person")


class Visitor(CustodyBase, DatabaseEntity):
    """Represents a registered visitor"""

    __tablename__ = "visitor"

    visitor_id = Column(Integer, primary_key=True)
    full_name = Column(String(255), nullable=False)
    national_id = Column(String(32), nullable=False, unique=True)
    mobile_number = Column(String(32))
    address = Column(Text)


class Visit(CustodyBase, DatabaseEntity):
    """Represents a visit by a visitor to a person in custody"""

    __tablename__ = "visit"

    __table_args__ = (
        CheckConstraint("time_end > time_start", name="visit_window_ordered"),
    )

    visit_id = Column(Integer, primary_key=True)
    person_id = Column(
        Integer, ForeignKey("person.person_id"), nullable=False, index=True
    )
    visitor_id = Column(
        Integer, ForeignKey("visitor.visitor_id"), nullable=False, index=True
    )
    relationship_to_person = Column(String(64), nullable=False)
    visit_date = Column(Date, nullable=False, index=True)
    time_start = Column(Time, nullable=False)
    time_end = Column(Time, nullable=False)
    purpose = Column(Text)
    status = Column(visit_status, nullable=False, default=VisitStatus.SCHEDULED)
    notes = Column(Text)

    person = relationship("Person")
    visitor = relationship("Visitor")
