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
"""
Class for generating SQLAlchemy Sessions objects for the custody database.
"""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.orm import Session

from custodia.persistence.database.sqlalchemy_database_key import SQLAlchemyDatabaseKey
from custodia.persistence.database.sqlalchemy_engine_manager import (
    SQLAlchemyEngineManager,
)


class SessionFactory:
    """Creates SQLAlchemy sessions for the given database"""

    @classmethod
    @contextmanager
    def using_database(
        cls,
        database_key: SQLAlchemyDatabaseKey,
        *,
        autocommit: bool = True,
    ) -> Iterator[Session]:
        """Yields a session that is one unit of work. When |autocommit| is set, the
        session is committed on a clean exit. Any exception raised inside the block
        propagates and nothing from the block is committed."""
        session = None
        try:
            session = cls._for_database(database_key=database_key)
            yield session
            if autocommit:
                try:
                    session.commit()
                except Exception as e:
                    session.rollback()
                    raise e
        finally:
            if session:
                session.close()

    @classmethod
    def _for_database(cls, database_key: SQLAlchemyDatabaseKey) -> Session:
        engine = SQLAlchemyEngineManager.get_engine_for_database(
            database_key=database_key
        )
        if engine is None:
            raise ValueError(f"No engine set for key [{database_key}]")

        session = Session(bind=engine, expire_on_commit=False)
        cls._alter_session_variables(session)
        return session

    @classmethod
    def _alter_session_variables(cls, session: Session) -> None:
        # Bounds how long a command waits on a row lock held by another unit of
        # work before failing.
        if session.bind.dialect.name == "postgresql":
            session.execute(text("SET lock_timeout = '10s';"))
