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
"""Mixin class for database entities"""
from functools import lru_cache
from typing import Set

from sqlalchemy.inspection import inspect
from sqlalchemy.orm.properties import ColumnProperty


class DatabaseEntity:
    """Mixin class to provide helper methods to expose database entity
    properties
    """

    @classmethod
    @lru_cache(maxsize=None)
    def get_primary_key_column_name(cls) -> str:
        """Returns string name of primary key column of the table

        NOTE: This name is the *column* name on the table, which is not
        guaranteed to be the same as the *attribute* name on the ORM object.
        """
        # primary_key returns a tuple containing a single column
        return inspect(cls).primary_key[0].name

    @classmethod
    @lru_cache(maxsize=None)
    def get_column_property_names(cls) -> Set[str]:
        """Returns set of string names of all properties of the entity that
        correspond to columns in the table.
        """
        return {
            prop.key
            for prop in inspect(cls).iterate_properties
            if isinstance(prop, ColumnProperty)
        }

    @classmethod
    def get_entity_name(cls) -> str:
        return cls.__name__
