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
"""Shared lookups used by the workflow commands."""
from typing import Any, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from custodia.persistence.database.database_entity import DatabaseEntity
from custodia.workflow.exceptions import Conflict, NotFound

ModelT = TypeVar("ModelT", bound=DatabaseEntity)


def get_or_raise(
    session: Session,
    model: Type[ModelT],
    entity_id: int,
    *,
    for_update: bool = False,
) -> ModelT:
    """Returns the row of |model| with the given primary key, raising NotFound if
    there is none. With |for_update| the row stays locked until the surrounding
    unit of work ends, and its attributes are reloaded from the database."""
    primary_key = getattr(model, model.get_primary_key_column_name())
    query = session.query(model).filter(primary_key == entity_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    db_object = query.one_or_none()
    if db_object is None:
        raise NotFound(model.get_entity_name(), entity_id)
    return db_object


def check_unique(
    session: Session,
    model: Type[ModelT],
    field: str,
    value: Any,
    exclude_id: Optional[int] = None,
) -> None:
    """Raises Conflict if another row of |model| already holds |value| in the
    unique column |field|."""
    query = session.query(model).filter(getattr(model, field) == value)
    if exclude_id is not None:
        primary_key = getattr(model, model.get_primary_key_column_name())
        query = query.filter(primary_key != exclude_id)
    if session.query(query.exists()).scalar():
        raise Conflict(
            f"{model.get_entity_name()} with {field} [{value}] already exists.",
            field=field,
        )


def flush_or_conflict(session: Session, description: str) -> None:
    """Flushes pending writes, translating a unique or foreign key violation
    raised by the database into Conflict."""
    try:
        session.flush()
    except IntegrityError as e:
        raise Conflict(description) from e
