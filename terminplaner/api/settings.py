from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from ..core.database import get_db
from ..schemas import SettingUpdate, SettingResponse
from ..services import SettingsService
from .deps import require_admin

router = APIRouter(prefix="/admin/settings", tags=["admin-settings"], dependencies=[Depends(require_admin)])


@router.get("/", response_model=List[SettingResponse])
async def list_settings(db: AsyncSession = Depends(get_db)):
    try:
        return await SettingsService(db).get_all()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to list settings: {str(e)}")


@router.post("/", response_model=SettingResponse)
async def upsert_setting(setting: SettingUpdate, db: AsyncSession = Depends(get_db)):
    try:
        return await SettingsService(db).upsert(setting.key, setting.value)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to save setting: {str(e)}")
