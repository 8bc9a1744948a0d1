from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_pagination import add_pagination

from livechat.config import get_settings
from livechat.exceptions import LiveChatError
from livechat.infra.logging_config import LoggingConfig, get_logger
from livechat.routers.attachments_router import attachments_router
from livechat.routers.conversations_router import conversations_router
from livechat.routers.guest_router import guest_router
from livechat.routers.messages_router import comments_router, messages_router

logger = get_logger("main")


async def livechat_error_handler(request: Request, exc: LiveChatError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
    )


def create_app(testing: bool = False) -> FastAPI:
    settings = get_settings()
    if not testing:
        LoggingConfig()

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(LiveChatError, livechat_error_handler)

    app.include_router(conversations_router)
    app.include_router(messages_router)
    app.include_router(comments_router)
    app.include_router(guest_router)
    app.include_router(attachments_router)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "environment": settings.environment}

    add_pagination(app)
    return app


app = create_app()
