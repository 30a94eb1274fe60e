import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from config import Settings
from db_connections import RecordStore, shutdown_db_client, startup_db_client
from exceptions import CollegeMateError
from friend.friend import friend_router
from user_profile.profile import (
    UserProfileService,
    shutdown_profile_service,
    startup_profile_service,
)

logger = logging.getLogger("collegemate.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    owns_store = getattr(app.state, "record_store", None) is None
    owns_profile_service = getattr(app.state, "profile_service", None) is None

    if owns_store:
        await startup_db_client(app)
    if owns_profile_service:
        await startup_profile_service(app)
    logger.info("Friend service started")
    yield
    if owns_profile_service:
        await shutdown_profile_service(app)
    if owns_store:
        await shutdown_db_client(app)
    logger.info("Friend service stopped")


async def collegemate_error_handler(request: Request, exc: CollegeMateError):
    logger.info("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.reason})


async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info("%s %s -> 400 %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Bad Request"},
    )


async def unexpected_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal Server Error"},
    )


def create_app(
        settings: Optional[Settings] = None,
        record_store: Optional[RecordStore] = None,
        profile_service: Optional[UserProfileService] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.record_store = record_store
    app.state.profile_service = profile_service

    app.add_exception_handler(CollegeMateError, collegemate_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unexpected_exception_handler)

    app.include_router(friend_router, prefix="/friend", tags=["friend"])
    return app


app = create_app()


@app.get("/")
async def root():
    return {"message": "CollegeMate friend service"}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
