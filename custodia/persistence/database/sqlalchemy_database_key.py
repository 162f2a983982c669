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
"""Defines an object that identifies a custody database whose schema is managed
by SQLAlchemy.
"""
import os
from typing import Optional, Type

import attr
import sqlalchemy
from sqlalchemy.orm import DeclarativeMeta

from custodia.common import attr_validators
from custodia.persistence.database.constants import SQLALCHEMY_DB_NAME
from custodia.persistence.database.schema.custody.schema import CustodyBase

DEFAULT_DB_NAME = "custodia"


@attr.s
class SQLAlchemyPoolConfiguration:
    """Contains the settings for a SQLAlchemy connection pool. These settings are for QueuePools, which are the
    default connection pool types for a database."""

    # The number of persistent connections to be kept in the pool.
    pool_size: int = attr.ib(default=5)

    # The maximum number of overflow connections for the pool, once pool_size is used up.
    max_overflow: int = attr.ib(default=10)

    # The number of seconds to wait before giving up on returning a connection.
    pool_timeout: int = attr.ib(default=30)


@attr.s(frozen=True)
class SQLAlchemyDatabaseKey:
    """Contains information required to identify a single custody database. All
    databases identified by these keys share the custody schema."""

    # Identifies which individual database to connect to inside the instance
    db_name: str = attr.ib(validator=attr_validators.is_non_empty_str)

    @property
    def declarative_meta(self) -> DeclarativeMeta:
        """The SQLAlchemy schema definition object for this database."""
        return CustodyBase

    @property
    def isolation_level(self) -> Optional[str]:
        # Capacity, scheduling and approval checks take explicit row locks
        # (SELECT ... FOR UPDATE) on the facility, person and behaviour record
        # rows they depend on, so READ COMMITTED is sufficient.
        return "READ COMMITTED"

    @property
    def poolclass(self) -> Optional[Type[sqlalchemy.pool.Pool]]:
        return None

    @property
    def pool_configuration(self) -> SQLAlchemyPoolConfiguration:
        return SQLAlchemyPoolConfiguration()

    @property
    def pool_recycle(self) -> int:
        # Recycle connections after 10 minutes so that connections dropped by the
        # server are not handed out.
        return 600

    @classmethod
    def for_default_db(cls) -> "SQLAlchemyDatabaseKey":
        """Returns the key for the database named by SQLALCHEMY_DB_NAME, falling back
        to the default database name."""
        return cls(db_name=os.environ.get(SQLALCHEMY_DB_NAME, DEFAULT_DB_NAME))
