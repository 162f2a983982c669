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
"""Top-level custodia package."""
import datetime
from decimal import Decimal
from enum import Enum

import cattr

# Serialization hooks shared by every projection returned from the workflow
# layer. Dates and times travel as ISO strings, money as a decimal string.

cattr.register_unstructure_hook(datetime.datetime, datetime.datetime.isoformat)
cattr.register_unstructure_hook(datetime.date, datetime.date.isoformat)
cattr.register_unstructure_hook(datetime.time, datetime.time.isoformat)
cattr.register_unstructure_hook(Decimal, str)
cattr.register_unstructure_hook(Enum, lambda e: e.value)
