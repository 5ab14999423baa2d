from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, OperationalError
from core.exceptions import PlatformException, StorageUnavailable

from db import Base, engine
from core.config import settings
from core.logging import logger

from models.user import User  # noqa: F401
from models.ledger_entry import LedgerEntry  # noqa: F401
from models.team import Team  # noqa: F401
from models.team_member import TeamMember  # noqa: F401
from models.tournament import Tournament  # noqa: F401
from models.registration import Registration  # noqa: F401

# ROUTES
from api.routers.users import router as users_router
from api.routers.wallet import router as wallet_router
from api.routers.teams import router as teams_router
from api.routers.tournaments import router as tournaments_router


app = FastAPI(title="Tournament Platform API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PlatformException)
async def platform_exception_handler(request: Request, exc: PlatformException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "type": exc.kind}
    )


@app.exception_handler(OperationalError)
@app.exception_handler(DBAPIError)
async def storage_error_handler(request: Request, exc: DBAPIError):
    # Storage faults stay retryable faults, never a business conflict
    logger.error(f"Storage fault on {request.method} {request.url.path}: {exc}")
    unavailable = StorageUnavailable()
    return JSONResponse(
        status_code=unavailable.status_code,
        content={"detail": unavailable.detail, "type": unavailable.kind}
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "type": "validation_error"}
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": "internal_error"}
    )


@app.on_event("startup")
async def startup_event():
    logger.info("Starting up application...")

    if settings.run_migrations:
        import subprocess
        logger.info("Running database migrations...")
        try:
            result = subprocess.run(
                ["python3", "-m", "alembic", "upgrade", "head"],
                capture_output=True,
                text=True,
                check=True
            )
            logger.info(f"Migrations completed successfully: {result.stdout}")
        except subprocess.CalledProcessError as e:
            logger.error(f"Migration failed: {e.stderr}")
            raise RuntimeError(f"Database migration failed: {e.stderr}")

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down application...")


app.include_router(users_router)
app.include_router(wallet_router)
app.include_router(teams_router)
app.include_router(tournaments_router)
