from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from ..core.database import get_db
from ..core.exceptions import TerminplanerError
from ..schemas import DepartmentCreate, DepartmentUpdate, DepartmentResponse
from ..services import DepartmentService
from .deps import require_admin, http_error

router = APIRouter(prefix="/admin/departments", tags=["admin-departments"], dependencies=[Depends(require_admin)])


@router.get("/", response_model=List[DepartmentResponse])
async def list_departments(db: AsyncSession = Depends(get_db)):
    try:
        return await DepartmentService(db).list_departments()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to list departments: {str(e)}")


@router.post("/", response_model=DepartmentResponse, status_code=201)
async def create_department(department_data: DepartmentCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await DepartmentService(db).create_department(department_data)
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create department: {str(e)}")


# user_ids replaces the member list and syncs batch-owned rows
@router.put("/{department_id}", response_model=DepartmentResponse)
async def update_department(
    department_id: int,
    department_data: DepartmentUpdate,
    db: AsyncSession = Depends(get_db)
):
    try:
        return await DepartmentService(db).update_department(department_id, department_data)
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to update department: {str(e)}")


@router.delete("/{department_id}")
async def delete_department(department_id: int, db: AsyncSession = Depends(get_db)):
    try:
        await DepartmentService(db).delete_department(department_id)
        return {"message": "Department deleted"}
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete department: {str(e)}")
