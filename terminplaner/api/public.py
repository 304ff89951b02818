import logging
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from ..core.clock import Clock, get_clock
from ..core.database import get_db
from ..core.exceptions import TerminplanerError
from ..schemas import (
    DepartmentBrief, DirectoryUserResponse, TopicResponse, SlotResponse,
    BookingCreate, BookingCancelRequest, BookingResponse, RecoveryRequest, SetupRequest, UserResponse
)
from ..services import (
    DepartmentService, UserService, TopicService, SlotService,
    BookingService, SettingsService
)
from .deps import http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public", tags=["public"])


def _parse_day(value: str, name: str) -> date:
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name} date: {value}")


# Departments for the directory filter
@router.get("/departments", response_model=List[DepartmentBrief])
async def list_departments(db: AsyncSession = Depends(get_db)):
    try:
        return await DepartmentService(db).list_departments(with_members=False)
    except Exception as e:
        logger.error(f"Failed to list departments: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to list departments: {str(e)}")


# User directory
@router.get("/users", response_model=List[DirectoryUserResponse])
async def list_users(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    try:
        return await UserService(db).list_directory(clock)
    except Exception as e:
        logger.error(f"Failed to list users: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to list users: {str(e)}")


# Presentation settings
@router.get("/settings")
async def get_public_settings(db: AsyncSession = Depends(get_db)):
    return await SettingsService(db).get_public()


# Topics a user offers
@router.get("/users/{user_id}/topics", response_model=List[TopicResponse])
async def list_user_topics(user_id: int, db: AsyncSession = Depends(get_db)):
    try:
        return await TopicService(db).list_for_user(user_id)
    except Exception as e:
        logger.error(f"Failed to list topics of user {user_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to list topics: {str(e)}")


# Free slots of a topic in a date range
@router.get("/slots", response_model=List[SlotResponse])
async def get_slots(
    user_id: Optional[int] = Query(None, alias="userId"),
    topic_id: Optional[int] = Query(None, alias="topicId"),
    start: Optional[str] = Query(None, description="First day, YYYY-MM-DD"),
    end: Optional[str] = Query(None, description="Last day (inclusive), YYYY-MM-DD"),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    if user_id is None or topic_id is None or not start or not end:
        raise HTTPException(status_code=400, detail="Missing parameters")
    start_date = _parse_day(start, "start")
    end_date = _parse_day(end, "end")
    try:
        slot_service = SlotService(db, clock)
        return await slot_service.get_available_slots(user_id, topic_id, start_date, end_date)
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to resolve slots for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to resolve slots: {str(e)}")


# Book a slot
@router.post("/book", response_model=BookingResponse, status_code=201)
async def book(booking_data: BookingCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await BookingService(db).create_booking(booking_data)
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create booking: {str(e)}")


# Cancel with the token from the confirmation
@router.post("/cancel")
async def cancel(cancel_data: BookingCancelRequest, db: AsyncSession = Depends(get_db)):
    try:
        await BookingService(db).cancel_by_token(cancel_data.token, cancel_data.reason)
        return {"success": True}
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to cancel booking: {str(e)}")


# Mail the upcoming bookings of an email address
@router.post("/recover")
async def recover(recovery_data: RecoveryRequest, db: AsyncSession = Depends(get_db), clock: Clock = Depends(get_clock)):
    try:
        await BookingService(db).recover_by_email(recovery_data.email, clock)
    except Exception as e:
        logger.error(f"Failed to process booking recovery: {e}")
        raise HTTPException(status_code=500, detail="Failed to process recovery request")
    return {"success": True, "message": "If bookings exist for this address, an email has been sent."}


@router.get("/setup-status")
async def setup_status(db: AsyncSession = Depends(get_db)):
    return {"is_setup": await UserService(db).admin_exists()}


# First administrator
@router.post("/setup", response_model=UserResponse, status_code=201)
async def setup(setup_data: SetupRequest, db: AsyncSession = Depends(get_db)):
    try:
        return await UserService(db).setup_admin(setup_data)
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Setup failed: {str(e)}")
