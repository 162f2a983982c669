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
"""Base classes and builders for tests that run workflow commands against a
database."""
import datetime
import tempfile
from decimal import Decimal
from typing import Optional
from unittest import TestCase

import pytest

from custodia.common.constants.custody import (
    BehaviourType,
    Gender,
    SeverityLevel,
    UserRole,
)
from custodia.persistence.database.session_factory import SessionFactory
from custodia.persistence.database.sqlalchemy_database_key import SQLAlchemyDatabaseKey
from custodia.persistence.entity import entities
from custodia.tests.utils import fakes
from custodia.workflow.behaviour import BehaviourRecordInterface
from custodia.workflow.facility import FacilityInterface
from custodia.workflow.person import PersonInterface
from custodia.workflow.scope import Scope, resolve_scope
from custodia.workflow.visitor import VisitorInterface
from custodia.workflow.work_record import WorkRecordInterface

SUPER_ADMIN = resolve_scope(UserRole.SUPER_ADMIN, None)


@pytest.mark.uses_db
class CustodyDatabaseTestCase(TestCase):
    """Base class for unit tests that act on an in-memory custody database."""

    def setUp(self) -> None:
        self.database_key = SQLAlchemyDatabaseKey(db_name="custodia_test")
        fakes.use_in_memory_sqlite_database(self.database_key)
        self._person_counter = 0

    def tearDown(self) -> None:
        fakes.teardown_sqlite_databases()

    @staticmethod
    def facility_admin(facility_id: Optional[int]) -> Scope:
        return resolve_scope(UserRole.FACILITY_ADMIN, facility_id)

    @staticmethod
    def officer(facility_id: Optional[int]) -> Scope:
        return resolve_scope(UserRole.OFFICER, facility_id)

    def create_facility(self, name: str, capacity: int) -> entities.Facility:
        with SessionFactory.using_database(self.database_key) as session:
            return FacilityInterface.create_facility(
                session=session,
                scope=SUPER_ADMIN,
                name=name,
                location=f"{name} Road",
                capacity=capacity,
            )

    def admit_person(
        self,
        facility_id: int,
        expected_release_date: Optional[datetime.date] = None,
        full_name: str = "Kamal Perera",
    ) -> entities.Person:
        self._person_counter += 1
        with SessionFactory.using_database(self.database_key) as session:
            return PersonInterface.admit(
                session=session,
                scope=SUPER_ADMIN,
                facility_id=facility_id,
                full_name=full_name,
                national_id=f"NIC-{self._person_counter:04d}",
                case_number=f"CASE-{self._person_counter:04d}",
                gender=Gender.MALE,
                birthdate=datetime.date(1985, 3, 14),
                admission_date=datetime.date(2024, 1, 10),
                expected_release_date=expected_release_date,
            )

    def propose_adjustment(
        self,
        person_id: int,
        days: int,
        behaviour_type: BehaviourType = BehaviourType.POSITIVE,
        severity: SeverityLevel = SeverityLevel.MODERATE,
        incident_date: datetime.date = datetime.date(2024, 2, 1),
    ) -> entities.BehaviourRecord:
        with SessionFactory.using_database(self.database_key) as session:
            return BehaviourRecordInterface.propose(
                session=session,
                scope=SUPER_ADMIN,
                person_id=person_id,
                behaviour_type=behaviour_type,
                severity=severity,
                incident_date=incident_date,
                description="Recorded by the wing officer.",
                sentence_adjustment_days=days,
            )

    def create_visitor(self, national_id: str = "V-0001") -> entities.Visitor:
        with SessionFactory.using_database(self.database_key) as session:
            return VisitorInterface.create_visitor(
                session=session,
                full_name="Nimali Silva",
                national_id=national_id,
                mobile_number="0771234567",
            )

    def create_work_record(
        self, person_id: int, hours: str = "6", payment: str = "1200"
    ) -> entities.WorkRecord:
        with SessionFactory.using_database(self.database_key) as session:
            return WorkRecordInterface.create_work_record(
                session=session,
                scope=SUPER_ADMIN,
                person_id=person_id,
                task_description="Kitchen duty",
                work_date=datetime.date(2024, 2, 5),
                hours_worked=Decimal(hours),
                payment_amount=Decimal(payment),
            )


@pytest.mark.uses_db
class CustodyOnDiskDatabaseTestCase(CustodyDatabaseTestCase):
    """Base class for tests that run workflow commands from several threads at
    once. The database lives in a temporary directory removed after each
    test."""

    def setUp(self) -> None:
        # pylint: disable=consider-using-with
        self.temp_dir = tempfile.TemporaryDirectory()
        self.database_key = SQLAlchemyDatabaseKey(db_name="custodia_concurrency_test")
        fakes.use_on_disk_sqlite_database(self.database_key, self.temp_dir.name)
        self._person_counter = 0

    def tearDown(self) -> None:
        fakes.teardown_sqlite_databases()
        self.temp_dir.cleanup()
