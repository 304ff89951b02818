from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from ..core.database import get_db
from ..core.exceptions import TerminplanerError
from ..schemas import TimeOffCreate, TimeOffResponse
from ..services import TimeOffService
from .deps import require_auth, http_error

router = APIRouter(prefix="/timeoff", tags=["timeoff"])


@router.get("/mine", response_model=List[TimeOffResponse])
async def list_my_time_off(user=Depends(require_auth), db: AsyncSession = Depends(get_db)):
    try:
        return await TimeOffService(db).list_for_user(user.id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to list time off: {str(e)}")


@router.post("/", response_model=TimeOffResponse, status_code=201)
async def create_time_off(
    time_off_data: TimeOffCreate,
    user=Depends(require_auth),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await TimeOffService(db).create_for_user(user.id, time_off_data)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create time off: {str(e)}")


@router.delete("/{time_off_id}")
async def delete_time_off(time_off_id: int, user=Depends(require_auth), db: AsyncSession = Depends(get_db)):
    try:
        await TimeOffService(db).delete_for_user(user.id, time_off_id)
        return {"message": "Time off deleted"}
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete time off: {str(e)}")
