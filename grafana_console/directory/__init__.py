"""
Opoppo directory adapter.

Read-only access to employees and the company / org unit / position
reference tables.
"""

from grafana_console.directory.client import DirectoryClientProtocol, OpoppoDirectoryClient
from grafana_console.directory.exceptions import (
    DirectoryConfigurationError,
    DirectoryConnectionError,
    DirectoryError,
)
from grafana_console.directory.mock import MockDirectoryClient
from grafana_console.directory.schemas import Company, EmployeeRecord, OrgUnit, Position

__all__ = [
    "DirectoryClientProtocol",
    "OpoppoDirectoryClient",
    "MockDirectoryClient",
    "EmployeeRecord",
    "Company",
    "OrgUnit",
    "Position",
    "DirectoryError",
    "DirectoryConfigurationError",
    "DirectoryConnectionError",
]
