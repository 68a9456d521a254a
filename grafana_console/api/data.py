"""
Directory and Dashboard API.

Live reads from the Opoppo directory and the dashboard counters.
"""

from fastapi import APIRouter

from grafana_console.api.schemas import EmployeeResponse
from grafana_console.dependencies import ContextDep, DirectoryDep, RepositoryDep

router = APIRouter(tags=["Data"])


@router.get("/opoppo/users", response_model=list[EmployeeResponse])
async def list_opoppo_users(directory: DirectoryDep) -> list[EmployeeResponse]:
    """Employees as currently stored in Opoppo (not the local mirror)."""
    employees = await directory.list_employees()
    return [
        EmployeeResponse(
            employee_id=e.employee_id,
            name=e.display_name,
            company_name=e.company_name,
            org_unit_name=e.org_unit_name,
            position_name=e.position_name,
        )
        for e in employees
    ]


@router.get("/stats")
async def get_stats(repository: RepositoryDep) -> dict:
    """User / organization / team counts and the most recent sync."""
    stats = await repository.get_stats()
    return stats.to_dict()


@router.get("/events")
async def get_events(context: ContextDep) -> dict:
    """Recent console activity, newest last."""
    return {"events": context.get_event_log()}
