import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from opsboard.config import settings
from opsboard.core.cache import PermissionCache
from opsboard.core.realtime import RealtimeInvalidator
from opsboard.core.resolver import PermissionResolver
from opsboard.database.supabase_client import SupabaseClient
from opsboard.modules.auth import routes as auth_routes
from opsboard.modules.roles import routes as roles_routes
from opsboard.modules.roles.repository import RbacRepository
from opsboard.modules.users import routes as users_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(roles_routes.router, prefix="/api/v1")
app.include_router(users_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup")

    # Role lookups and realtime use the service client so RLS never hides roles or grants
    service_client = await SupabaseClient.get_service_client()
    resolver = PermissionResolver(
        RbacRepository(service_client),
        PermissionCache(),
        settings.get_protected_role_names(),
    )
    app.state.resolver = resolver

    if settings.realtime_enabled:
        invalidator = RealtimeInvalidator(resolver, channel_name=settings.realtime_channel)
        try:
            await invalidator.start(service_client)
            app.state.invalidator = invalidator
        except Exception as e:
            # Without the feed, role/grant edits made outside this API are only seen after restart
            logger.error(f"Realtime subscription failed: {e}")


@app.on_event("shutdown")
async def shutdown_event():
    invalidator = getattr(app.state, "invalidator", None)
    if invalidator is not None:
        await invalidator.stop(await SupabaseClient.get_service_client())
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": "Welcome to opsboard", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: the permission resolver is available once startup completes."""
    return {"status": "ready" if hasattr(app.state, "resolver") else "starting"}
