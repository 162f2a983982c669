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
"""Interface for working with the Visitor model.

Visitors are not tied to a facility: any caller may register or look one up.
"""
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from custodia.persistence.database.schema.custody import schema
from custodia.persistence.entity import converter, entities
from custodia.workflow.exceptions import InvalidTransition, ValidationFailed
from custodia.workflow.queries import check_unique, flush_or_conflict, get_or_raise

_UPDATABLE_FIELDS = frozenset(["full_name", "national_id", "mobile_number", "address"])


class VisitorInterface:
    """Contains methods for maintaining the visitor registry."""

    @staticmethod
    def create_visitor(
        *,
        session: Session,
        full_name: str,
        national_id: str,
        mobile_number: Optional[str] = None,
        address: Optional[str] = None,
    ) -> entities.Visitor:
        check_unique(session, schema.Visitor, "national_id", national_id)
        visitor = schema.Visitor(
            full_name=full_name,
            national_id=national_id,
            mobile_number=mobile_number,
            address=address,
        )
        session.add(visitor)
        flush_or_conflict(
            session, f"Visitor with national id [{national_id}] already exists."
        )
        return converter.convert(visitor)

    @staticmethod
    def update_visitor(
        *, session: Session, visitor_id: int, changes: Dict[str, Any]
    ) -> entities.Visitor:
        unknown_fields = set(changes) - _UPDATABLE_FIELDS
        if unknown_fields:
            raise ValidationFailed(
                f"Cannot update visitor fields: {sorted(unknown_fields)}"
            )
        visitor = get_or_raise(session, schema.Visitor, visitor_id, for_update=True)
        if "national_id" in changes and changes["national_id"] != visitor.national_id:
            check_unique(
                session,
                schema.Visitor,
                "national_id",
                changes["national_id"],
                exclude_id=visitor_id,
            )
        for field, value in changes.items():
            setattr(visitor, field, value)
        flush_or_conflict(
            session, f"Visitor [{visitor_id}] conflicts with an existing visitor."
        )
        return converter.convert(visitor)

    @staticmethod
    def delete_visitor(*, session: Session, visitor_id: int) -> None:
        """Deletes a visitor who has never been part of a visit."""
        visitor = get_or_raise(session, schema.Visitor, visitor_id, for_update=True)
        has_visits = session.query(
            session.query(schema.Visit)
            .filter(schema.Visit.visitor_id == visitor_id)
            .exists()
        ).scalar()
        if has_visits:
            raise InvalidTransition(
                f"Visitor [{visitor_id}] has visit history and cannot be deleted."
            )
        session.delete(visitor)
        flush_or_conflict(
            session, f"Visitor [{visitor_id}] is referenced by a visit."
        )

    @staticmethod
    def get_visitor(*, session: Session, visitor_id: int) -> entities.Visitor:
        return converter.convert(get_or_raise(session, schema.Visitor, visitor_id))

    @staticmethod
    def get_visitor_by_national_id(
        *, session: Session, national_id: str
    ) -> Optional[entities.Visitor]:
        visitor = (
            session.query(schema.Visitor)
            .filter(schema.Visitor.national_id == national_id)
            .one_or_none()
        )
        return converter.convert(visitor) if visitor is not None else None
