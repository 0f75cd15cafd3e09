from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from thesisguide.api.routes import calendar, guidance, health, notifications, periods
from thesisguide.core.config import get_settings
from thesisguide.core.exceptions import AppError
from thesisguide.db.base import Base
from thesisguide.db.session import engine

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.auto_create_schema:
        import thesisguide.models  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Database schema ensured")
    yield


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(guidance.router, prefix=f"{settings.api_prefix}/guidance", tags=["guidance"])
app.include_router(notifications.router, prefix=settings.api_prefix, tags=["notifications"])
app.include_router(calendar.router, prefix=settings.api_prefix, tags=["calendar"])
app.include_router(periods.router, prefix=settings.api_prefix, tags=["academic-periods"])
