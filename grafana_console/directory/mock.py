"""
In-memory Opoppo directory.

Stand-in for ``OpoppoDirectoryClient`` used in offline development
(``APP_USE_MOCK_SOURCES=true``) and in tests. Rows are plain dicts keyed
by the directory's column names and are validated the same way as real
query results.
"""

import copy
from typing import Any, Dict, Iterable, List, Optional

from grafana_console.directory.schemas import Company, EmployeeRecord, OrgUnit, Position


def _employee(
    user_id: str,
    sei: str,
    mei: str,
    position: tuple[str, str],
    company: tuple[str, str],
    org_unit: tuple[str, str],
) -> Dict[str, Any]:
    return {
        "USER_ID": user_id,
        "SEI": sei,
        "MEI": mei,
        "YAKUSYOKU_CD": position[0],
        "YAKUSYOKU_NM": position[1],
        "KAISYA_CD": company[0],
        "KAISYA_NM": company[1],
        "SOSHIKI_CD": org_unit[0],
        "SOSHIKI_NM": org_unit[1],
    }


DEFAULT_EMPLOYEES: List[Dict[str, Any]] = [
    _employee("0001", "山田", "太郎", ("01", "部長"), ("001", "本社"), ("0001", "営業部")),
    _employee("0002", "佐藤", "花子", ("02", "課長"), ("001", "本社"), ("0001", "営業部")),
    _employee("0003", "鈴木", "一郎", ("03", "社員"), ("001", "本社"), ("0002", "技術部")),
    _employee("0004", "田中", "浩", ("01", "部長"), ("001", "本社"), ("0002", "技術部")),
    _employee("0005", "高橋", "明", ("03", "社員"), ("002", "支社"), ("0003", "管理部")),
]

DEFAULT_COMPANIES: List[Dict[str, Any]] = [
    {"KAISYA_CD": "001", "KAISYA_NM": "本社"},
    {"KAISYA_CD": "002", "KAISYA_NM": "支社"},
    {"KAISYA_CD": "003", "KAISYA_NM": "子会社"},
]

DEFAULT_ORG_UNITS: List[Dict[str, Any]] = [
    {"KAISYA_CD": "001", "SOSHIKI_CD": "0001", "SOSHIKI_NM": "営業部"},
    {"KAISYA_CD": "001", "SOSHIKI_CD": "0002", "SOSHIKI_NM": "技術部"},
    {"KAISYA_CD": "002", "SOSHIKI_CD": "0003", "SOSHIKI_NM": "管理部"},
    {"KAISYA_CD": "003", "SOSHIKI_CD": "0004", "SOSHIKI_NM": "企画部"},
]

DEFAULT_POSITIONS: List[Dict[str, Any]] = [
    {"KAISYA_CD": "001", "YAKUSYOKU_CD": "01", "YAKUSYOKU_NM": "部長"},
    {"KAISYA_CD": "001", "YAKUSYOKU_CD": "02", "YAKUSYOKU_NM": "課長"},
    {"KAISYA_CD": "001", "YAKUSYOKU_CD": "03", "YAKUSYOKU_NM": "社員"},
    {"KAISYA_CD": "002", "YAKUSYOKU_CD": "01", "YAKUSYOKU_NM": "部長"},
    {"KAISYA_CD": "002", "YAKUSYOKU_CD": "03", "YAKUSYOKU_NM": "社員"},
]


class MockDirectoryClient:
    """
    Mutable in-memory directory.

    Args:
        employees: Employee rows; defaults to the five seeded employees.
            Pass an empty list for an empty directory.
        failure: When set, every read raises this exception.
    """

    def __init__(
        self,
        employees: Optional[Iterable[Dict[str, Any]]] = None,
        companies: Optional[Iterable[Dict[str, Any]]] = None,
        org_units: Optional[Iterable[Dict[str, Any]]] = None,
        positions: Optional[Iterable[Dict[str, Any]]] = None,
        failure: Optional[Exception] = None,
    ) -> None:
        self.employees = copy.deepcopy(list(DEFAULT_EMPLOYEES if employees is None else employees))
        self.companies = copy.deepcopy(list(DEFAULT_COMPANIES if companies is None else companies))
        self.org_units = copy.deepcopy(list(DEFAULT_ORG_UNITS if org_units is None else org_units))
        self.positions = copy.deepcopy(list(DEFAULT_POSITIONS if positions is None else positions))
        self.failure = failure

    def _check(self) -> None:
        if self.failure is not None:
            raise self.failure

    async def list_employees(self) -> List[EmployeeRecord]:
        self._check()
        return [EmployeeRecord.model_validate(row) for row in self.employees]

    async def get_employee(self, employee_id: str) -> Optional[EmployeeRecord]:
        self._check()
        for row in self.employees:
            if row.get("USER_ID") == employee_id:
                return EmployeeRecord.model_validate(row)
        return None

    async def list_companies(self) -> List[Company]:
        self._check()
        rows = sorted(self.companies, key=lambda r: r.get("KAISYA_NM") or "")
        return [Company.model_validate(row) for row in rows]

    async def list_org_units(self) -> List[OrgUnit]:
        self._check()
        rows = sorted(self.org_units, key=lambda r: (r["KAISYA_CD"], r.get("SOSHIKI_NM") or ""))
        return [OrgUnit.model_validate(row) for row in rows]

    async def list_positions(self) -> List[Position]:
        self._check()
        rows = sorted(self.positions, key=lambda r: (r["KAISYA_CD"], r.get("YAKUSYOKU_NM") or ""))
        return [Position.model_validate(row) for row in rows]

    async def check_connection(self) -> dict:
        return {"status": "healthy", "message": "Mock directory", "details": {}}

    async def close(self) -> None:
        pass
