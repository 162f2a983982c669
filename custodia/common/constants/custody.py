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
"""Enums describing people in custody and the records kept about them."""
import enum


class UserRole(enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    FACILITY_ADMIN = "FACILITY_ADMIN"
    OFFICER = "OFFICER"
    RECORDS_KEEPER = "RECORDS_KEEPER"
    VISITOR_MANAGER = "VISITOR_MANAGER"


ADMIN_ROLES = frozenset([UserRole.SUPER_ADMIN, UserRole.FACILITY_ADMIN])


class Gender(enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class PersonStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    RELEASED = "RELEASED"
    # Historical marker only. Transfers leave a person ACTIVE at the new
    # facility and are recorded in the person_transfer table.
    TRANSFERRED = "TRANSFERRED"
    DECEASED = "DECEASED"


class BehaviourType(enum.Enum):
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"


class SeverityLevel(enum.Enum):
    MINOR = "MINOR"
    MODERATE = "MODERATE"
    SEVERE = "SEVERE"


class AdjustmentStatus(enum.Enum):
    NOT_APPLICABLE = "NOT_APPLICABLE"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PaymentStatus(enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class VisitStatus(enum.Enum):
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class BehaviourRating(enum.Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
