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
"""Converts custody schema objects into their entity counterparts."""
from typing import Any, List, Type

import attr
import cattr

from custodia.persistence.database.database_entity import DatabaseEntity
from custodia.persistence.entity import entities


class DatabaseConversionError(Exception):
    """Raised when a schema object has no entity counterpart."""


def _get_entity_class(schema_object: DatabaseEntity) -> Type[Any]:
    entity_cls = getattr(entities, schema_object.get_entity_name(), None)
    if entity_cls is None or not attr.has(entity_cls):
        raise DatabaseConversionError(
            f"Unable to convert class {schema_object.__class__.__name__}"
        )
    return entity_cls


def convert(schema_object: DatabaseEntity) -> Any:
    """Converts the given schema object to the entity class of the same name.
    Only columns that are also entity fields are copied."""
    entity_cls = _get_entity_class(schema_object)
    field_names = {field.name for field in attr.fields(entity_cls)}
    kwargs = {
        name: getattr(schema_object, name)
        for name in schema_object.get_column_property_names()
        if name in field_names
    }
    return entity_cls(**kwargs)


def convert_all(schema_objects: List[DatabaseEntity]) -> List[Any]:
    """Converts the given list of schema objects into their entity counterparts"""
    return [convert(schema_object) for schema_object in schema_objects]


def serialize(entity: Any) -> Any:
    """Unstructures an entity (or list of entities) into JSON-compatible
    primitives using the hooks registered in the custodia package."""
    return cattr.unstructure(entity)
