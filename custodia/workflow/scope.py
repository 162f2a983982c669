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
"""Resolves a caller's identity into the set of facilities they may act upon.

Every workflow command receives a Scope explicitly. A SUPER_ADMIN acts on every
facility. Any other role acts only on the facility they are assigned to, and a
caller with no facility assignment acts on none.
"""
from typing import Optional

import attr

from custodia.common import attr_validators
from custodia.common.constants.custody import ADMIN_ROLES, UserRole
from custodia.workflow.exceptions import Forbidden


@attr.s(frozen=True)
class Scope:
    role: UserRole = attr.ib(validator=attr.validators.instance_of(UserRole))
    facility_id: Optional[int] = attr.ib(
        default=None, validator=attr_validators.is_opt_int
    )

    @property
    def is_global(self) -> bool:
        return self.role is UserRole.SUPER_ADMIN

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def resolve_scope(role: UserRole, facility_id: Optional[int]) -> Scope:
    if role is UserRole.SUPER_ADMIN:
        return Scope(role=role)
    return Scope(role=role, facility_id=facility_id)


def authorize(scope: Scope, target_facility_id: Optional[int]) -> bool:
    if scope.is_global:
        return True
    return scope.facility_id is not None and scope.facility_id == target_facility_id


def require_authorized(scope: Scope, target_facility_id: Optional[int]) -> None:
    if not authorize(scope, target_facility_id):
        raise Forbidden(
            f"Caller with role {scope.role.value} may not act on facility "
            f"[{target_facility_id}]."
        )


def require_admin(scope: Scope) -> None:
    if not scope.is_admin:
        raise Forbidden(
            f"Caller with role {scope.role.value} may not change a person's "
            f"custody status."
        )


def require_global(scope: Scope) -> None:
    if not scope.is_global:
        raise Forbidden(
            f"Caller with role {scope.role.value} may not manage facilities."
        )
