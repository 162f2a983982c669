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
"""A class to manage all SQLAlchemy Engines for our custody databases."""
import logging
import os
from typing import Any, Dict, Optional

import sqlalchemy
from sqlalchemy.engine import URL, Engine

from custodia.persistence.database.constants import (
    DEFAULT_DB_PORT,
    SQLALCHEMY_DB_HOST,
    SQLALCHEMY_DB_PASSWORD,
    SQLALCHEMY_DB_PORT,
    SQLALCHEMY_DB_USER,
    SQLALCHEMY_USE_SSL,
)
from custodia.persistence.database.sqlalchemy_database_key import SQLAlchemyDatabaseKey
from custodia.utils import environment


class SQLAlchemyEngineManager:
    """A class to manage all synchronous SQLAlchemy Engines for our database instances."""

    _engine_for_database: Dict[SQLAlchemyDatabaseKey, Engine] = {}

    @classmethod
    def init_engine_for_postgres_instance(
        cls,
        database_key: SQLAlchemyDatabaseKey,
        db_url: URL,
    ) -> Engine:
        """Initializes a sqlalchemy Engine object for the given Postgres database
        and caches it for future use."""
        pool_configuration = database_key.pool_configuration
        return cls.init_engine_for_db_instance(
            database_key=database_key,
            db_url=db_url,
            isolation_level=database_key.isolation_level,
            pool_size=pool_configuration.pool_size,
            max_overflow=pool_configuration.max_overflow,
            pool_timeout=pool_configuration.pool_timeout,
            pool_recycle=database_key.pool_recycle,
            # Log information about how connections are being reused.
            echo_pool=True,
        )

    @classmethod
    def init_engine_for_db_instance(
        cls,
        database_key: SQLAlchemyDatabaseKey,
        db_url: URL,
        **dialect_specific_kwargs: Any,
    ) -> Engine:
        """Initializes a sqlalchemy Engine object for the given database and caches
        it for future use."""
        if database_key in cls._engine_for_database:
            raise ValueError(f"Already initialized database [{database_key}]")

        try:
            engine = sqlalchemy.create_engine(
                db_url,
                poolclass=database_key.poolclass,
                **dialect_specific_kwargs,
            )
        except BaseException as e:
            logging.error(
                "Unable to create engine for [%s]: %s",
                database_key,
                str(e),
            )
            raise e
        cls._engine_for_database[database_key] = engine
        return engine

    @classmethod
    def teardown_engines(cls) -> None:
        for engine in cls._engine_for_database.values():
            engine.dispose()
        cls._engine_for_database.clear()

    @classmethod
    def init_engine(cls, database_key: SQLAlchemyDatabaseKey) -> Engine:
        return cls.init_engine_for_postgres_instance(
            database_key=database_key,
            db_url=cls.get_server_postgres_instance_url(database_key=database_key),
        )

    @classmethod
    def get_engine_for_database(
        cls, database_key: SQLAlchemyDatabaseKey
    ) -> Optional[Engine]:
        """Retrieve the engine for a given database.

        Will attempt to create the engine if it does not already exist and the
        connection settings are available in the environment."""
        if database_key not in cls._engine_for_database:
            if (
                not environment.in_deployed_env()
                and os.environ.get(SQLALCHEMY_DB_HOST) is None
            ):
                logging.info(
                    "No database host configured, not connecting to postgres instance for [%s].",
                    database_key,
                )
                return None
            cls.init_engine(database_key=database_key)

        return cls._engine_for_database.get(database_key, None)

    @classmethod
    def get_server_postgres_instance_url(
        cls, *, database_key: SQLAlchemyDatabaseKey
    ) -> URL:
        """Returns the Postgres URL for a given database key.

        The host, user, password and port used to build the URL are read from
        the SQLALCHEMY_DB_* environment variables.
        """
        db_host = cls._get_required_env_var(SQLALCHEMY_DB_HOST)
        db_user = cls._get_required_env_var(SQLALCHEMY_DB_USER)
        db_password = cls._get_required_env_var(SQLALCHEMY_DB_PASSWORD)
        db_port = int(os.environ.get(SQLALCHEMY_DB_PORT, DEFAULT_DB_PORT))
        use_ssl = os.environ.get(SQLALCHEMY_USE_SSL, "0") in ("1", "true", "True")

        return URL.create(
            drivername="postgresql",
            username=db_user,
            password=db_password,
            host=db_host,
            port=db_port,
            database=database_key.db_name,
            query={"sslmode": "require"} if use_ssl else {},
        )

    @classmethod
    def _get_required_env_var(cls, name: str) -> str:
        value = os.environ.get(name)
        if value is None:
            raise ValueError(f"Unable to retrieve database setting [{name}]")
        return value
