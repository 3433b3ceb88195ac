import asyncio
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from rewards.config.settings import settings
from rewards.core.errors import OnboardingError
from rewards.modules.auth import routes as auth_routes
from rewards.modules.onboarding import routes as onboarding_routes
from rewards.modules.reconciliation import routes as reconciliation_routes
from rewards.modules.admin import routes as admin_routes
from rewards.modules.tiers import routes as tiers_routes
from rewards.modules.tasks import routes as tasks_routes
from rewards.modules.deposits import routes as deposits_routes
from rewards.modules.withdrawals import routes as withdrawals_routes
from rewards.modules.referrals import routes as referrals_routes
from rewards.modules.users import routes as users_routes

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


@app.exception_handler(OnboardingError)
async def onboarding_exception_handler(request: Request, exc: OnboardingError):
    # Already logged with context where it was classified
    content = {"success": False, "message": "Onboarding failed", "category": exc.category}
    if not settings.is_production:
        content["error"] = exc.to_dict()
    return JSONResponse(status_code=exc.status_code, content=content)


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
app.include_router(auth_routes.router, prefix="/api")
app.include_router(onboarding_routes.router, prefix="/api")
app.include_router(admin_routes.router, prefix="/api")
app.include_router(reconciliation_routes.router, prefix="/api")
app.include_router(tiers_routes.router, prefix="/api")
app.include_router(tasks_routes.router, prefix="/api")
app.include_router(deposits_routes.router, prefix="/api")
app.include_router(withdrawals_routes.router, prefix="/api")
app.include_router(referrals_routes.router, prefix="/api")
app.include_router(users_routes.router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup")
    if not settings.supabase_service_role_key:
        logger.warning("SUPABASE_SERVICE_ROLE_KEY is not set; onboarding and admin writes will be subject to RLS")

    if settings.reconcile_interval_seconds > 0:
        from rewards.modules.reconciliation.scheduler import reconciliation_loop
        app.state.reconciliation_task = asyncio.create_task(reconciliation_loop())
        logger.info(f"Reconciliation sweep started - every {settings.reconcile_interval_seconds}s")


@app.on_event("shutdown")
async def shutdown_event():
    task = getattr(app.state, "reconciliation_task", None)
    if task is not None:
        task.cancel()
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": "Welcome to rewards-backend", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: extend here with DB checks if needed."""
    return {"status": "ready"}
