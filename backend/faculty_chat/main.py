import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from faculty_chat.config import settings
from faculty_chat.core.errors import ChatError, describe_validation_errors
from faculty_chat.core.logging_config import configure_logging
from faculty_chat.database.base import Base
from faculty_chat.database.session import engine
from faculty_chat.models import chat, notification, user  # noqa: F401  (register tables)
from faculty_chat.routes import conversations, directory, messages, notifications

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Faculty Portal Messaging")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def create_tables():
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = describe_validation_errors(exc.errors())
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": problems[0] if len(problems) == 1 else "Validation failed",
            "error": "validation_error",
            "errors": problems,
        },
    )


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError):
    logger.warning("%s %s rejected: %s (%s)", request.method, request.url.path, exc.detail, exc.kind)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


app.include_router(conversations.router)
app.include_router(conversations.ws_router)
app.include_router(messages.router)
app.include_router(directory.router)
app.include_router(notifications.router)
app.include_router(notifications.ws_router)
