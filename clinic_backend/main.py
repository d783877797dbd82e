"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from clinic_backend.core.config import settings
from clinic_backend.core.middleware import setup_middleware
from clinic_backend.core.exceptions import ClinicError, AuthenticationError

from clinic_backend.api.auth import router as auth_router
from clinic_backend.api.users import router as users_router
from clinic_backend.api.permissions import router as permissions_router
from clinic_backend.api.roles import router as roles_router
from clinic_backend.api.appointments import router as appointments_router
from clinic_backend.api.patients import router as patients_router
from clinic_backend.api.doctors import router as doctors_router
from clinic_backend.api.clinics import router as clinics_router
from clinic_backend.api.employees import router as employees_router
from clinic_backend.api.admin import router as admin_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("clinic_backend")


def bootstrap() -> None:
    """Create tables, the permission catalog, predefined roles and the admin login."""
    from clinic_backend.db.base import Base
    from clinic_backend.db.session import SessionLocal, engine
    from clinic_backend.db.seeds.seed_roles import seed_permissions_and_roles
    from clinic_backend.db.seeds.seed_admin import seed_admin
    import clinic_backend.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_permissions_and_roles(db)
        seed_admin(db)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s", settings.APP_NAME)
    if settings.SEED_ON_STARTUP:
        bootstrap()

    if settings.PERMISSION_CACHE_ENABLED:
        from clinic_backend.services.cache_service import cache_service
        if cache_service.health_check():
            logger.info("Redis connected, permission cache on")
        else:
            logger.warning("Redis not available, permissions will be read from the database")

    yield

    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    description="Clinic appointments with role-based access control",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)


@app.exception_handler(ClinicError)
async def clinic_exception_handler(request: Request, exc: ClinicError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(permissions_router, prefix="/api")
app.include_router(roles_router, prefix="/api")
app.include_router(appointments_router, prefix="/api")
app.include_router(patients_router, prefix="/api")
app.include_router(doctors_router, prefix="/api")
app.include_router(clinics_router, prefix="/api")
app.include_router(employees_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health():
    """Quick health check endpoint."""
    return {"status": "ok"}
