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
"""Tests for running workflow commands as units of work."""
from sqlalchemy.orm import Session

from custodia.persistence.database.schema.custody import schema
from custodia.persistence.database.session_factory import SessionFactory
from custodia.tests.workflow.utils import SUPER_ADMIN, CustodyDatabaseTestCase
from custodia.workflow import commands
from custodia.workflow.exceptions import CapacityExceeded
from custodia.workflow.facility import FacilityInterface
from custodia.workflow.person import PersonInterface


class TestRunCommand(CustodyDatabaseTestCase):
    """Tests for run_command and run_bulk_command."""

    def setUp(self) -> None:
        super().setUp()
        self.facility = self.create_facility("Welikada", capacity=2)
        self.person = self.admit_person(self.facility.facility_id)

    def _facility_capacity(self) -> int:
        with SessionFactory.using_database(self.database_key) as session:
            return FacilityInterface.get_facility(
                session=session,
                scope=SUPER_ADMIN,
                facility_id=self.facility.facility_id,
            ).capacity

    def test_run_command_commits(self) -> None:
        with self.assertLogs(level="INFO") as logs:
            updated = commands.run_command(
                self.database_key,
                "update_facility",
                lambda session: FacilityInterface.update_facility(
                    session=session,
                    scope=SUPER_ADMIN,
                    facility_id=self.facility.facility_id,
                    changes={"capacity": 5},
                ),
            )

        self.assertEqual(5, updated.capacity)
        self.assertEqual(5, self._facility_capacity())
        self.assertIn("Command [update_facility] committed.", logs.output[-1])

    def test_run_command_rolls_back_on_error(self) -> None:
        def command(session: Session) -> None:
            FacilityInterface.update_facility(
                session=session,
                scope=SUPER_ADMIN,
                facility_id=self.facility.facility_id,
                changes={"capacity": 1},
            )
            FacilityInterface.update_facility(
                session=session,
                scope=SUPER_ADMIN,
                facility_id=self.facility.facility_id,
                changes={"capacity": 0},
            )

        with self.assertLogs(level="WARNING") as logs:
            with self.assertRaises(CapacityExceeded):
                commands.run_command(self.database_key, "shrink_facility", command)

        self.assertEqual(2, self._facility_capacity())
        self.assertIn("[capacity_exceeded]", logs.output[0])

    def test_run_command_leaves_no_partial_admission(self) -> None:
        def command(session: Session) -> None:
            for i in range(3):
                PersonInterface.admit(
                    session=session,
                    scope=SUPER_ADMIN,
                    facility_id=self.facility.facility_id,
                    full_name=f"Person {i}",
                    national_id=f"NIC-BATCH-{i}",
                    case_number=f"CASE-BATCH-{i}",
                    gender=self.person.gender,
                    birthdate=self.person.birthdate,
                )

        with self.assertRaises(CapacityExceeded):
            with self.assertLogs(level="WARNING"):
                commands.run_command(self.database_key, "admit_batch", command)

        with SessionFactory.using_database(self.database_key) as session:
            self.assertEqual(1, session.query(schema.Person).count())

    def test_run_bulk_command(self) -> None:
        def command(session: Session, facility_id: int) -> None:
            FacilityInterface.deactivate_facility(
                session=session, scope=SUPER_ADMIN, facility_id=facility_id
            )

        empty = self.create_facility("Bogambara", capacity=3)
        with self.assertLogs(level="INFO"):
            result = commands.run_bulk_command(
                self.database_key,
                "deactivate_facility",
                [empty.facility_id, self.facility.facility_id, 999],
                command,
            )

        self.assertEqual(3, result.total)
        self.assertEqual(1, result.succeeded)
        self.assertEqual(2, result.failed)
        self.assertEqual(
            [None, "invalid_transition", "not_found"],
            [outcome.error_code for outcome in result.outcomes],
        )
