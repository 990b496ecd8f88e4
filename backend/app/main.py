import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.routes import router as api_router
from app.core.config import Settings, get_settings
from app.core.logging import configure_logging
from app.core.request_meta import extract_client_ip
from app.realtime.socket_server import GameSocketServer
from app.services.action_processor import ActionProcessor
from app.services.rate_limit_service import RateLimitService
from app.services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)


class ApiRateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, settings: Settings, rate_limiter: RateLimitService) -> None:
        super().__init__(app)
        self.settings = settings
        self.rate_limiter = rate_limiter

    async def dispatch(self, request, call_next):
        if not self.settings.rate_limit_enabled or request.url.path.endswith("/health"):
            return await call_next(request)

        decision = self.rate_limiter.check(
            f"api:global:{extract_client_ip(request)}",
            limit=self.settings.rate_limit_global_limit,
            window_seconds=self.settings.rate_limit_global_window_seconds,
        )
        headers = {
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": str(decision.remaining),
            "X-RateLimit-Reset-Seconds": str(decision.reset_after_seconds),
        }
        if not decision.allowed:
            headers["Retry-After"] = str(decision.retry_after_seconds)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded"},
                headers=headers,
            )

        response = await call_next(request)
        for key, value in headers.items():
            response.headers[key] = value
        return response


def create_api_app(settings: Settings, registry: RoomRegistry) -> FastAPI:
    api_app = FastAPI(title=settings.app_name, debug=settings.debug)
    api_app.state.room_registry = registry
    api_app.add_middleware(
        ApiRateLimitMiddleware,
        settings=settings,
        rate_limiter=RateLimitService(),
    )
    api_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    api_app.include_router(api_router, prefix=settings.api_prefix)

    @api_app.on_event("startup")
    def on_startup() -> None:
        logger.info("%s ready (socket.io path /%s)", settings.app_name, settings.socketio_path)

    @api_app.on_event("shutdown")
    def on_shutdown() -> None:
        logger.info("Shutting down, dropping %d room(s)", len(registry))
        registry.clear()

    return api_app


def create_app(settings: Settings | None = None):
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    registry = RoomRegistry(settings)
    processor = ActionProcessor(settings)
    game_socket = GameSocketServer(registry, processor, settings)
    api_app = create_api_app(settings, registry)
    return game_socket.asgi_app(api_app)


app = create_app()
