import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.attempts import router as attempts_router
from api.courses import router as courses_router
from api.health import router as health_router
from api.quiz import router as quiz_router
from app.core.config import Settings, get_settings
from app.core.exceptions import QuizServiceError
from app.db.database import init_db

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, init_database: bool = True) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if init_database:
            init_db()
        logger.info(f"Quiz API started ({settings.ENVIRONMENT})")
        yield

    app = FastAPI(title="Course Quiz API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(QuizServiceError)
    async def quiz_error_handler(request: Request, exc: QuizServiceError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message, "error": exc.error, **exc.extra},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info(f"Rejected request to {request.url.path}: {len(exc.errors())} validation errors")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "message": "Invalid request",
                "error": "InvalidArgument",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(Exception)
    async def server_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        content = {"success": False, "message": "Server error", "error": "ServerError"}
        if settings.is_development:
            content["detail"] = str(exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

    @app.get("/")
    async def root():
        return {"message": "Welcome to the Course Quiz API"}

    app.include_router(health_router)
    app.include_router(courses_router)
    # attempt routes first so /quizzes/attempts/... is not captured by /quizzes/{quiz_id}
    app.include_router(attempts_router)
    app.include_router(quiz_router)
    return app


app = create_app()
