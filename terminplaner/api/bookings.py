from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from ..core.database import get_db
from ..core.exceptions import TerminplanerError
from ..schemas import BookingResponse, ProviderCancelRequest
from ..services import BookingService
from .deps import require_auth, http_error

router = APIRouter(prefix="/bookings", tags=["bookings"])


# Bookings where I am the provider
@router.get("/mine", response_model=List[BookingResponse])
async def list_my_bookings(
    archived: bool = Query(False, description="Archived instead of active bookings"),
    user=Depends(require_auth),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await BookingService(db).list_for_provider(user.id, archived)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to list bookings: {str(e)}")


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int,
    cancel_data: Optional[ProviderCancelRequest] = None,
    user=Depends(require_auth),
    db: AsyncSession = Depends(get_db)
):
    try:
        reason = cancel_data.reason if cancel_data else None
        return await BookingService(db).cancel_by_provider(booking_id, user, reason)
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to cancel booking: {str(e)}")


@router.post("/{booking_id}/archive", response_model=BookingResponse)
async def archive_booking(booking_id: int, user=Depends(require_auth), db: AsyncSession = Depends(get_db)):
    try:
        return await BookingService(db).set_archived(booking_id, user, True)
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to archive booking: {str(e)}")


@router.post("/{booking_id}/unarchive", response_model=BookingResponse)
async def unarchive_booking(booking_id: int, user=Depends(require_auth), db: AsyncSession = Depends(get_db)):
    try:
        return await BookingService(db).set_archived(booking_id, user, False)
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to unarchive booking: {str(e)}")


@router.delete("/{booking_id}")
async def delete_booking(booking_id: int, user=Depends(require_auth), db: AsyncSession = Depends(get_db)):
    try:
        await BookingService(db).delete_booking(booking_id, user)
        return {"message": "Booking deleted"}
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete booking: {str(e)}")
