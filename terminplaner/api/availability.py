from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from ..core.database import get_db
from ..core.exceptions import TerminplanerError
from ..schemas import AvailabilityCreate, AvailabilityResponse
from ..services import AvailabilityService
from .deps import require_auth, http_error

router = APIRouter(prefix="/availability", tags=["availability"])


# My availability rules
@router.get("/mine", response_model=List[AvailabilityResponse])
async def list_my_rules(user=Depends(require_auth), db: AsyncSession = Depends(get_db)):
    try:
        return await AvailabilityService(db).list_for_user(user.id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to list availability: {str(e)}")


@router.post("/", response_model=AvailabilityResponse, status_code=201)
async def create_rule(
    rule_data: AvailabilityCreate,
    user=Depends(require_auth),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await AvailabilityService(db).create_for_user(user.id, rule_data)
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create availability: {str(e)}")


# Batch-owned rules are rejected with 403
@router.delete("/{rule_id}")
async def delete_rule(rule_id: int, user=Depends(require_auth), db: AsyncSession = Depends(get_db)):
    try:
        await AvailabilityService(db).delete_for_user(user.id, rule_id)
        return {"message": "Availability rule deleted"}
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete availability: {str(e)}")
