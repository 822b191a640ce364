import asyncio
import contextlib

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import drives, health
from .config import get_settings
from .logging_utils import configure_logging
from .services import drive_monitor


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)

    poll_task = asyncio.create_task(
        drive_monitor.get_poller().run_forever(settings.poll_interval_seconds)
    )
    try:
        yield
    finally:
        poll_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await poll_task


app = FastAPI(title="HDD API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(drives.router, prefix="/api/drives", tags=["drives"])
