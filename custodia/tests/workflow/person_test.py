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
"""This class implements tests for the PersonInterface lifecycle commands."""
import datetime
from typing import Any

from freezegun import freeze_time
from more_itertools import one

from custodia.common.constants.custody import Gender, PersonStatus
from custodia.persistence.database.schema.custody import schema
from custodia.persistence.database.session_factory import SessionFactory
from custodia.persistence.entity import entities
from custodia.tests.workflow.utils import SUPER_ADMIN, CustodyDatabaseTestCase
from custodia.workflow.exceptions import (
    CapacityExceeded,
    Conflict,
    Forbidden,
    InvalidTransition,
    NotFound,
    ValidationFailed,
)
from custodia.workflow.person import PersonInterface
from custodia.workflow.scope import Scope


class TestPersonInterface(CustodyDatabaseTestCase):
    """Implements tests for the PersonInterface."""

    def setUp(self) -> None:
        super().setUp()
        self.welikada = self.create_facility("Welikada", capacity=2)
        self.bogambara = self.create_facility("Bogambara", capacity=1)

    def _admit(self, scope: Scope, **kwargs: Any) -> entities.Person:
        payload = {
            "full_name": "Sunil Jayasinghe",
            "national_id": "851234567V",
            "case_number": "HC-2024-001",
            "gender": Gender.MALE,
            "birthdate": datetime.date(1985, 5, 2),
        }
        payload.update(kwargs)
        with SessionFactory.using_database(self.database_key) as session:
            return PersonInterface.admit(session=session, scope=scope, **payload)

    @freeze_time("2024-03-01")
    def test_admit(self) -> None:
        person = self._admit(SUPER_ADMIN, facility_id=self.welikada.facility_id)
        self.assertEqual(PersonStatus.ACTIVE, person.status)
        self.assertEqual(self.welikada.facility_id, person.facility_id)
        self.assertEqual(datetime.date(2024, 3, 1), person.admission_date)
        self.assertEqual("Sri Lankan", person.nationality)
        self.assertIsNone(person.actual_release_date)

    def test_admit_uses_caller_facility(self) -> None:
        person = self._admit(self.facility_admin(self.bogambara.facility_id))
        self.assertEqual(self.bogambara.facility_id, person.facility_id)

    def test_admit_into_other_facility_forbidden(self) -> None:
        with self.assertRaises(Forbidden):
            self._admit(
                self.facility_admin(self.bogambara.facility_id),
                facility_id=self.welikada.facility_id,
            )
        with SessionFactory.using_database(self.database_key) as session:
            self.assertEqual(0, session.query(schema.Person).count())

    def test_admit_without_facility(self) -> None:
        with self.assertRaises(ValidationFailed):
            self._admit(SUPER_ADMIN)
        with self.assertRaises(ValidationFailed):
            self._admit(self.officer(None))

    def test_admit_missing_facility(self) -> None:
        with self.assertRaises(NotFound):
            self._admit(SUPER_ADMIN, facility_id=12345)

    def test_admit_over_capacity(self) -> None:
        self.admit_person(self.bogambara.facility_id)
        with self.assertRaises(CapacityExceeded):
            self._admit(SUPER_ADMIN, facility_id=self.bogambara.facility_id)

        with SessionFactory.using_database(self.database_key) as session:
            self.assertEqual(1, session.query(schema.Person).count())

    def test_admit_duplicate_national_id(self) -> None:
        self._admit(SUPER_ADMIN, facility_id=self.welikada.facility_id)
        with self.assertRaises(Conflict) as e:
            self._admit(
                SUPER_ADMIN,
                facility_id=self.welikada.facility_id,
                case_number="HC-2024-002",
            )
        self.assertEqual("national_id", e.exception.field)

    def test_admit_duplicate_case_number(self) -> None:
        self._admit(SUPER_ADMIN, facility_id=self.welikada.facility_id)
        with self.assertRaises(Conflict) as e:
            self._admit(
                SUPER_ADMIN,
                facility_id=self.welikada.facility_id,
                national_id="907654321V",
            )
        self.assertEqual("case_number", e.exception.field)

    def test_admit_release_before_admission(self) -> None:
        with self.assertRaises(ValidationFailed):
            self._admit(
                SUPER_ADMIN,
                facility_id=self.welikada.facility_id,
                admission_date=datetime.date(2024, 5, 1),
                expected_release_date=datetime.date(2024, 4, 1),
            )

    def test_update_person(self) -> None:
        person = self.admit_person(self.welikada.facility_id)
        with SessionFactory.using_database(self.database_key) as session:
            updated = PersonInterface.update_person(
                session=session,
                scope=self.officer(self.welikada.facility_id),
                person_id=person.person_id,
                changes={
                    "cell_number": "B-12",
                    "expected_release_date": datetime.date(2027, 1, 1),
                },
            )
        self.assertEqual("B-12", updated.cell_number)
        self.assertEqual(datetime.date(2027, 1, 1), updated.expected_release_date)

    def test_update_person_cannot_change_status(self) -> None:
        person = self.admit_person(self.welikada.facility_id)
        with SessionFactory.using_database(self.database_key) as session:
            with self.assertRaises(ValidationFailed):
                PersonInterface.update_person(
                    session=session,
                    scope=SUPER_ADMIN,
                    person_id=person.person_id,
                    changes={"status": PersonStatus.RELEASED},
                )

    def test_update_person_conflict(self) -> None:
        first = self.admit_person(self.welikada.facility_id)
        second = self.admit_person(self.welikada.facility_id)
        with SessionFactory.using_database(self.database_key) as session:
            with self.assertRaises(Conflict):
                PersonInterface.update_person(
                    session=session,
                    scope=SUPER_ADMIN,
                    person_id=second.person_id,
                    changes={"national_id": first.national_id},
                )

    @freeze_time("2024-06-15")
    def test_transfer(self) -> None:
        person = self.admit_person(self.welikada.facility_id)
        with SessionFactory.using_database(self.database_key) as session:
            transferred = PersonInterface.transfer(
                session=session,
                scope=SUPER_ADMIN,
                person_id=person.person_id,
                target_facility_id=self.bogambara.facility_id,
                reason="Court order",
            )
        self.assertEqual(PersonStatus.ACTIVE, transferred.status)
        self.assertEqual(self.bogambara.facility_id, transferred.facility_id)

        with SessionFactory.using_database(self.database_key) as session:
            transfer = one(
                PersonInterface.get_transfers(
                    session=session, scope=SUPER_ADMIN, person_id=person.person_id
                )
            )
        self.assertEqual(self.welikada.facility_id, transfer.source_facility_id)
        self.assertEqual(self.bogambara.facility_id, transfer.target_facility_id)
        self.assertEqual(datetime.date(2024, 6, 15), transfer.transfer_date)
        self.assertEqual("Court order", transfer.reason)

    def test_transfer_to_full_facility(self) -> None:
        self.admit_person(self.bogambara.facility_id)
        person = self.admit_person(self.welikada.facility_id)
        with SessionFactory.using_database(self.database_key) as session:
            with self.assertRaises(CapacityExceeded):
                PersonInterface.transfer(
                    session=session,
                    scope=SUPER_ADMIN,
                    person_id=person.person_id,
                    target_facility_id=self.bogambara.facility_id,
                )

        with SessionFactory.using_database(self.database_key) as session:
            unchanged = PersonInterface.get_person(
                session=session, scope=SUPER_ADMIN, person_id=person.person_id
            )
            self.assertEqual(self.welikada.facility_id, unchanged.facility_id)
            self.assertEqual(0, session.query(schema.PersonTransfer).count())

    def test_transfer_to_same_facility(self) -> None:
        person = self.admit_person(self.welikada.facility_id)
        with SessionFactory.using_database(self.database_key) as session:
            with self.assertRaises(InvalidTransition):
                PersonInterface.transfer(
                    session=session,
                    scope=SUPER_ADMIN,
                    person_id=person.person_id,
                    target_facility_id=self.welikada.facility_id,
                )

    def test_transfer_requires_admin_role(self) -> None:
        person = self.admit_person(self.welikada.facility_id)
        with SessionFactory.using_database(self.database_key) as session:
            with self.assertRaises(Forbidden):
                PersonInterface.transfer(
                    session=session,
                    scope=self.officer(self.welikada.facility_id),
                    person_id=person.person_id,
                    target_facility_id=self.bogambara.facility_id,
                )

    def test_transfer_requires_source_scope(self) -> None:
        person = self.admit_person(self.welikada.facility_id)
        with SessionFactory.using_database(self.database_key) as session:
            with self.assertRaises(Forbidden):
                PersonInterface.transfer(
                    session=session,
                    scope=self.facility_admin(self.bogambara.facility_id),
                    person_id=person.person_id,
                    target_facility_id=self.bogambara.facility_id,
                )

    def test_transfer_released_person(self) -> None:
        person = self.admit_person(self.welikada.facility_id)
        with SessionFactory.using_database(self.database_key) as session:
            PersonInterface.release(
                session=session, scope=SUPER_ADMIN, person_id=person.person_id
            )
        with SessionFactory.using_database(self.database_key) as session:
            with self.assertRaises(InvalidTransition):
                PersonInterface.transfer(
                    session=session,
                    scope=SUPER_ADMIN,
                    person_id=person.person_id,
                    target_facility_id=self.bogambara.facility_id,
                )

    @freeze_time("2024-09-30")
    def test_release(self) -> None:
        person = self.admit_person(self.welikada.facility_id)
        with SessionFactory.using_database(self.database_key) as session:
            released = PersonInterface.release(
                session=session,
                scope=self.facility_admin(self.welikada.facility_id),
                person_id=person.person_id,
                reason="Sentence served",
                notes="Collected by family",
            )
        self.assertEqual(PersonStatus.RELEASED, released.status)
        self.assertEqual(datetime.date(2024, 9, 30), released.actual_release_date)
        self.assertEqual("Sentence served", released.release_reason)
        self.assertEqual("Collected by family", released.release_notes)

    def test_release_twice(self) -> None:
        person = self.admit_person(self.welikada.facility_id)
        with freeze_time("2024-09-30"):
            with SessionFactory.using_database(self.database_key) as session:
                PersonInterface.release(
                    session=session, scope=SUPER_ADMIN, person_id=person.person_id
                )
        with freeze_time("2024-10-30"):
            with SessionFactory.using_database(self.database_key) as session:
                with self.assertRaises(InvalidTransition):
                    PersonInterface.release(
                        session=session, scope=SUPER_ADMIN, person_id=person.person_id
                    )
                with self.assertRaises(InvalidTransition):
                    PersonInterface.decease(
                        session=session, scope=SUPER_ADMIN, person_id=person.person_id
                    )

        with SessionFactory.using_database(self.database_key) as session:
            unchanged = PersonInterface.get_person(
                session=session, scope=SUPER_ADMIN, person_id=person.person_id
            )
        self.assertEqual(PersonStatus.RELEASED, unchanged.status)
        self.assertEqual(datetime.date(2024, 9, 30), unchanged.actual_release_date)

    def test_decease(self) -> None:
        person = self.admit_person(self.welikada.facility_id)
        with SessionFactory.using_database(self.database_key) as session:
            deceased = PersonInterface.decease(
                session=session, scope=SUPER_ADMIN, person_id=person.person_id
            )
        self.assertEqual(PersonStatus.DECEASED, deceased.status)
        self.assertIsNotNone(deceased.actual_release_date)

    def test_release_frees_capacity(self) -> None:
        person = self.admit_person(self.bogambara.facility_id)
        with SessionFactory.using_database(self.database_key) as session:
            PersonInterface.release(
                session=session, scope=SUPER_ADMIN, person_id=person.person_id
            )
        readmitted = self.admit_person(self.bogambara.facility_id)
        self.assertEqual(PersonStatus.ACTIVE, readmitted.status)

    def test_get_person_out_of_scope(self) -> None:
        person = self.admit_person(self.welikada.facility_id)
        with SessionFactory.using_database(self.database_key) as session:
            with self.assertRaises(Forbidden):
                PersonInterface.get_person(
                    session=session,
                    scope=self.officer(self.bogambara.facility_id),
                    person_id=person.person_id,
                )

    def test_get_people(self) -> None:
        released = self.admit_person(self.welikada.facility_id)
        self.admit_person(self.welikada.facility_id)
        self.admit_person(self.bogambara.facility_id)
        with SessionFactory.using_database(self.database_key) as session:
            PersonInterface.release(
                session=session, scope=SUPER_ADMIN, person_id=released.person_id
            )
        with SessionFactory.using_database(self.database_key) as session:
            self.assertEqual(
                3, len(PersonInterface.get_people(session=session, scope=SUPER_ADMIN))
            )
            active_at_welikada = PersonInterface.get_people(
                session=session,
                scope=self.officer(self.welikada.facility_id),
                status=PersonStatus.ACTIVE,
            )
        self.assertEqual(1, len(active_at_welikada))
