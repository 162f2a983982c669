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
"""Packaging for the custodia prisoner lifecycle and workflow engine."""
import setuptools

REQUIRED_PACKAGES = [
    "attrs",
    "cattrs",
    "Flask",
    "more-itertools",
    "python-dateutil",
    "SQLAlchemy>=2.0",
]

TEST_PACKAGES = [
    "freezegun",
    "mock",
    "pytest",
]

setuptools.setup(
    name="custodia",
    version="1.0.0",
    install_requires=REQUIRED_PACKAGES,
    extras_require={"test": TEST_PACKAGES},
    packages=setuptools.find_packages(include=["custodia", "custodia.*"]),
)
