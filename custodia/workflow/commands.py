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
"""Runs workflow commands as units of work.

Workflow commands only read and write through the session they are given. This
module opens that session, commits it when the command succeeds and logs the
outcome, so callers outside the workflow layer never manage transactions.
"""
import logging
from typing import Callable, Iterable, TypeVar

from sqlalchemy.orm import Session

from custodia.persistence.database.session_factory import SessionFactory
from custodia.persistence.database.sqlalchemy_database_key import SQLAlchemyDatabaseKey
from custodia.persistence.entity.entities import BulkOutcome, BulkResult
from custodia.workflow.exceptions import CustodyWorkflowError

ResultT = TypeVar("ResultT")


def run_command(
    database_key: SQLAlchemyDatabaseKey,
    command_name: str,
    command: Callable[[Session], ResultT],
) -> ResultT:
    """Runs |command| in its own unit of work. The result is committed only if
    the command returns; any error propagates with nothing written."""
    try:
        with SessionFactory.using_database(database_key) as session:
            result = command(session)
    except CustodyWorkflowError as e:
        logging.warning(
            "Command [%s] rejected with [%s]: %s", command_name, e.code, e.description
        )
        raise
    logging.info("Command [%s] committed.", command_name)
    return result


def run_bulk_command(
    database_key: SQLAlchemyDatabaseKey,
    command_name: str,
    record_ids: Iterable[int],
    command: Callable[[Session, int], object],
) -> BulkResult:
    """Runs |command| once per record id, each in its own unit of work. A record
    that fails is reported in the result and does not affect the others."""
    outcomes = []
    for record_id in record_ids:
        try:
            run_command(
                database_key,
                f"{command_name}[{record_id}]",
                lambda session, record_id=record_id: command(session, record_id),
            )
        except CustodyWorkflowError as e:
            outcomes.append(
                BulkOutcome(
                    record_id=record_id,
                    succeeded=False,
                    error_code=e.code,
                    error_description=str(e.description),
                )
            )
            continue
        outcomes.append(BulkOutcome(record_id=record_id, succeeded=True))

    result = BulkResult(outcomes=outcomes)
    logging.info(
        "Bulk command [%s] finished: %s of %s records succeeded.",
        command_name,
        result.succeeded,
        result.total,
    )
    return result
