"""Employee endpoints."""

from fastapi import APIRouter, Depends, status

from ..domain.schemas import EmployeeCreate, EmployeeOut
from ..ledger import EmployeeDirectory
from .deps import get_directory

router = APIRouter(prefix="/employees", tags=["employees"])


@router.post("", response_model=EmployeeOut, status_code=status.HTTP_201_CREATED)
async def create_employee(
    payload: EmployeeCreate, directory: EmployeeDirectory = Depends(get_directory)
) -> EmployeeOut:
    """Register an employee with a zero point balance."""
    return EmployeeOut.from_domain(await directory.create(payload))


@router.get("/{employee_id}", response_model=EmployeeOut)
async def get_employee(
    employee_id: str, directory: EmployeeDirectory = Depends(get_directory)
) -> EmployeeOut:
    """Fetch an employee and their point balance."""
    return EmployeeOut.from_domain(await directory.get(employee_id))
