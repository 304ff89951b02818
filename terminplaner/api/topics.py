from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from ..core.database import get_db
from ..core.exceptions import TerminplanerError
from ..schemas import TopicCreate, TopicUpdate, TopicResponse
from ..services import TopicService
from .deps import require_auth, http_error

router = APIRouter(prefix="/topics", tags=["topics"])


@router.get("/mine", response_model=List[TopicResponse])
async def list_my_topics(user=Depends(require_auth), db: AsyncSession = Depends(get_db)):
    try:
        return await TopicService(db).list_for_user(user.id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to list topics: {str(e)}")


@router.post("/", response_model=TopicResponse, status_code=201)
async def create_topic(topic_data: TopicCreate, user=Depends(require_auth), db: AsyncSession = Depends(get_db)):
    try:
        return await TopicService(db).create_for_user(user.id, topic_data)
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create topic: {str(e)}")


@router.put("/{topic_id}", response_model=TopicResponse)
async def update_topic(
    topic_id: int,
    topic_data: TopicUpdate,
    user=Depends(require_auth),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await TopicService(db).update_for_user(user.id, topic_id, topic_data)
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to update topic: {str(e)}")


# Existing bookings keep their history without the topic
@router.delete("/{topic_id}")
async def delete_topic(topic_id: int, user=Depends(require_auth), db: AsyncSession = Depends(get_db)):
    try:
        await TopicService(db).delete_for_user(user.id, topic_id)
        return {"message": "Topic deleted"}
    except TerminplanerError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete topic: {str(e)}")
