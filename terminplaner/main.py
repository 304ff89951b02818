from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from datetime import datetime, timedelta
import asyncio
import logging
from .api import (
    auth, public, availability, topics, timeoff, bookings,
    users, departments, batch, settings as settings_router
)
from .core.config import settings
from .core.database import AsyncSessionLocal, create_tables
from .cron.archive_bookings import archive_past_bookings
from .cron.send_reminders import send_due_reminders

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=f"{settings.app_name} API",
    description="Appointment booking backend with centrally managed availability",
    version="1.0.0"
)


async def reminders_worker():
    while True:
        try:
            async with AsyncSessionLocal() as session:
                await send_due_reminders(session)
        except Exception as e:
            logger.exception(f"Reminder sweep failed: {e}")
        await asyncio.sleep(settings.reminder_sweep_interval_seconds)


async def archive_worker():
    while True:
        try:
            now = datetime.now()
            # Next run at archive_sweep_hour local time
            next_run = now.replace(hour=settings.archive_sweep_hour, minute=0, second=0, microsecond=0)
            if now >= next_run:
                next_run = next_run + timedelta(days=1)
            await asyncio.sleep((next_run - now).total_seconds())

            async with AsyncSessionLocal() as session:
                await archive_past_bookings(session)
        except Exception as e:
            logger.exception(f"Archive sweep failed: {e}")
            await asyncio.sleep(60)


@app.on_event("startup")
async def startup_event():
    await create_tables()

    if settings.enable_background_jobs:
        asyncio.create_task(reminders_worker())
        asyncio.create_task(archive_worker())
        logger.info("Background sweeps started")


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(public, prefix="/api")
app.include_router(auth, prefix="/api")
app.include_router(availability, prefix="/api")
app.include_router(topics, prefix="/api")
app.include_router(timeoff, prefix="/api")
app.include_router(bookings, prefix="/api")
app.include_router(users, prefix="/api")
app.include_router(departments, prefix="/api")
app.include_router(batch, prefix="/api")
app.include_router(settings_router, prefix="/api")


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
