from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from ..core.database import get_db
from ..core.exceptions import TerminplanerError
from ..schemas import BatchConfigCreate, BatchConfigUpdate, BatchConfigResponse
from ..services import BatchService
from .deps import require_admin, http_error

router = APIRouter(prefix="/admin/batch", tags=["admin-batch"], dependencies=[Depends(require_admin)])


@router.get("/", response_model=List[BatchConfigResponse])
async def list_batches(db: AsyncSession = Depends(get_db)):
    try:
        return await BatchService(db).list_batches()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to list batch configs: {str(e)}")


@router.post("/", response_model=BatchConfigResponse, status_code=201)
async def create_batch(batch_data: BatchConfigCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await BatchService(db).create_batch(batch_data)
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create batch config: {str(e)}")


@router.put("/{batch_id}", response_model=BatchConfigResponse)
async def update_batch(batch_id: int, batch_data: BatchConfigUpdate, db: AsyncSession = Depends(get_db)):
    try:
        return await BatchService(db).update_batch(batch_id, batch_data)
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to update batch config: {str(e)}")


# Deletes every row the config provisioned
@router.delete("/{batch_id}")
async def delete_batch(batch_id: int, db: AsyncSession = Depends(get_db)):
    try:
        await BatchService(db).delete_batch(batch_id)
        return {"message": "Batch config deleted"}
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete batch config: {str(e)}")


# Repairs owned rows after a failed department sync
@router.post("/{batch_id}/reconcile", response_model=BatchConfigResponse)
async def reconcile_batch(batch_id: int, db: AsyncSession = Depends(get_db)):
    try:
        return await BatchService(db).reconcile_batch(batch_id)
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to reconcile batch config: {str(e)}")
