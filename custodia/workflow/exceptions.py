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
"""Contains the typed errors raised by custody workflow commands.

Every failed precondition surfaces as exactly one of these. A command that raises
leaves the store untouched: the surrounding unit of work is rolled back.
"""
from http import HTTPStatus
from typing import Any, Optional

from custodia.utils.flask_exception import FlaskException


class CustodyWorkflowError(FlaskException):
    """Base class for all errors raised by workflow commands."""


class NotFound(CustodyWorkflowError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity_name: str, entity_id: Any) -> None:
        self.entity_name = entity_name
        self.entity_id = entity_id
        super().__init__(
            "not_found",
            f"{entity_name} [{entity_id}] does not exist.",
            HTTPStatus.NOT_FOUND,
        )


class Forbidden(CustodyWorkflowError):
    """Raised when the caller's scope does not cover the target facility, or the
    caller's role may not perform the command."""

    def __init__(self, description: str) -> None:
        super().__init__("forbidden", description, HTTPStatus.FORBIDDEN)


class CapacityExceeded(CustodyWorkflowError):
    def __init__(
        self, facility_id: int, capacity: int, active_count: int, action: str
    ) -> None:
        self.facility_id = facility_id
        self.capacity = capacity
        self.active_count = active_count
        super().__init__(
            "capacity_exceeded",
            f"Cannot {action}: facility [{facility_id}] holds {active_count} "
            f"active people with a capacity of {capacity}.",
            HTTPStatus.CONFLICT,
        )


class InvalidTransition(CustodyWorkflowError):
    """Raised when an entity is not in a state that permits the command, e.g.
    releasing someone who was already released or approving an adjustment
    twice."""

    def __init__(self, description: str) -> None:
        super().__init__("invalid_transition", description, HTTPStatus.CONFLICT)


class Conflict(CustodyWorkflowError):
    """Raised on uniqueness violations and overlapping visits."""

    def __init__(self, description: str, field: Optional[str] = None) -> None:
        self.field = field
        super().__init__("conflict", description, HTTPStatus.CONFLICT)


class ValidationFailed(CustodyWorkflowError):
    """Raised when a payload violates a cross-field rule."""

    def __init__(self, description: str, field: Optional[str] = None) -> None:
        self.field = field
        super().__init__("validation_failed", description, HTTPStatus.BAD_REQUEST)
