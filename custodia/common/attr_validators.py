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
"""Contains helper aliases and functions for various attrs validators that can be passed to the `validator=` arg of
any attr field. For example:

@attr.s
class MyClass:
  name: Optional[str] = attr.ib(validator=is_opt(str))
  is_active: bool = attr.ib(validator=is_bool)
"""

import datetime
from decimal import Decimal
from typing import Any, Callable, Type

import attr


class IsOptionalValidator:
    def __init__(self, expected_cls_type: Type) -> None:
        self._expected_cls_type = expected_cls_type

    def __call__(self, instance: Any, attribute: attr.Attribute, value: Any) -> None:
        return attr.validators.optional(
            attr.validators.instance_of(self._expected_cls_type)
        )(instance, attribute, value)


def is_opt(cls_type: Type) -> Callable:
    """Returns an attrs validator that checks if the value is an instance of |cls_type|
    or None."""
    return IsOptionalValidator(cls_type)


def is_non_empty_str(_instance: Any, _attribute: attr.Attribute, value: str) -> None:
    if not isinstance(value, str):
        raise ValueError(f"Expected value type str, found {type(value)}.")
    if not value:
        raise ValueError("String value should not be empty.")


def is_non_negative_int(
    _instance: Any, attribute: attr.Attribute, value: int
) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(
            f"Expected int for field [{attribute.name}], found {type(value)}."
        )
    if value < 0:
        raise ValueError(f"Field [{attribute.name}] must be non-negative: {value}")


class IsListOfValidator:
    def __init__(self, list_item_expected_type: Type) -> None:
        self._list_item_expected_type = list_item_expected_type

    def __call__(self, instance: Any, attribute: attr.Attribute, value: Any) -> None:
        if not isinstance(value, list):
            raise ValueError(
                f"Found value for list type field [{attribute.name}] on class "
                f"[{type(instance)}] which has non-list type [{type(value)}]."
            )
        for item in value:
            if not isinstance(item, self._list_item_expected_type):
                raise ValueError(
                    f"Found item in list type field [{attribute.name}] on class "
                    f"[{type(instance)}] which is not the expected type "
                    f"[{self._list_item_expected_type}]: {type(item)}"
                )


def is_list_of(list_item_expected_type: Type) -> IsListOfValidator:
    return IsListOfValidator(list_item_expected_type)


# String field validators
is_str = attr.validators.instance_of(str)
is_opt_str = is_opt(str)

# Int field validators
is_int = attr.validators.instance_of(int)
is_opt_int = is_opt(int)

# Decimal field validators
is_decimal = attr.validators.instance_of(Decimal)

# Date field validators
is_date = attr.validators.instance_of(datetime.date)
is_opt_date = is_opt(datetime.date)

# Time field validators
is_time = attr.validators.instance_of(datetime.time)

# Datetime field validators
is_datetime = attr.validators.instance_of(datetime.datetime)
is_opt_datetime = is_opt(datetime.datetime)

# Boolean field validators
is_bool = attr.validators.instance_of(bool)
