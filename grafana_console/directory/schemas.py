"""
Directory Schemas.

Stable shapes for rows read from the Opoppo directory. Field aliases are
the directory's column names, so rows can be validated as they come back
from the database.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _DirectoryRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class EmployeeRecord(_DirectoryRow):
    """
    One employee, with display names resolved through the reference tables.

    The ``*_name`` fields are None when the joined reference row is missing.
    """

    employee_id: str = Field(alias="USER_ID")
    surname: Optional[str] = Field(default=None, alias="SEI")
    given_name: Optional[str] = Field(default=None, alias="MEI")
    position_code: Optional[str] = Field(default=None, alias="YAKUSYOKU_CD")
    company_code: Optional[str] = Field(default=None, alias="KAISYA_CD")
    org_unit_code: Optional[str] = Field(default=None, alias="SOSHIKI_CD")
    position_name: Optional[str] = Field(default=None, alias="YAKUSYOKU_NM")
    org_unit_name: Optional[str] = Field(default=None, alias="SOSHIKI_NM")
    company_name: Optional[str] = Field(default=None, alias="KAISYA_NM")

    @property
    def display_name(self) -> str:
        """Surname and given name, falling back to the employee ID."""
        name = f"{self.surname or ''} {self.given_name or ''}".strip()
        return name or self.employee_id

    @property
    def placeholder_email(self) -> str:
        """The directory has no email column; users get ``<id>@example.com``."""
        return f"{self.employee_id}@example.com"


class Company(_DirectoryRow):
    """KAISYA row."""

    company_code: str = Field(alias="KAISYA_CD")
    company_name: Optional[str] = Field(default=None, alias="KAISYA_NM")


class OrgUnit(_DirectoryRow):
    """SOSHIKI row."""

    company_code: str = Field(alias="KAISYA_CD")
    org_unit_code: str = Field(alias="SOSHIKI_CD")
    org_unit_name: Optional[str] = Field(default=None, alias="SOSHIKI_NM")


class Position(_DirectoryRow):
    """YAKUSYOKU row."""

    company_code: str = Field(alias="KAISYA_CD")
    position_code: str = Field(alias="YAKUSYOKU_CD")
    position_name: Optional[str] = Field(default=None, alias="YAKUSYOKU_NM")
