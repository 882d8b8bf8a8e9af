from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import os
import logging

from watchlist_core import config
from watchlist_core.database import create_engine, create_tables
from watchlist_core.routes import admin, status as status_routes, watchlist
from watchlist_core.storage.errors import (
    ConnectionFailure,
    DuplicateTmdbId,
    DuplicateUsername,
    NotFound,
    StorageError,
)
from watchlist_core.storage.gateway import StorageGateway

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


# ============================================
# Application Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    - Create the engine, the tables and the storage gateway
      (skipped when a gateway was already attached, e.g. by tests)

    Shutdown:
    - Dispose of the engine we created
    """
    engine = None
    if getattr(app.state, "storage", None) is None:
        engine = create_engine()
        try:
            await create_tables(engine)
        except Exception as e:
            # The gateway still serves degraded reads and emergency registrations
            logger.error(f"Could not create tables at startup: {str(e)}")
        app.state.storage = StorageGateway.from_engine(engine)

    storage = app.state.storage
    logger.info("=" * 60)
    logger.info("Watchlist API starting")
    logger.info(f"   Environment: {storage.environment}")
    logger.info(f"   Emergency tier: {'enabled' if storage.emergency_permitted else 'disabled'}")
    logger.info("=" * 60)

    yield

    logger.info("Watchlist API shutting down")
    if engine is not None:
        await engine.dispose()
        app.state.storage = None


app = FastAPI(
    title="Watchlist API",
    description="Movie and TV watchlist tracker backed by tiered, fault-tolerant storage",
    version="1.0.0",
    lifespan=lifespan,
)

allowed_origins = ["http://localhost:3000", "http://localhost:5173"]
if production_url := os.getenv("FRONTEND_URL"):
    allowed_origins.append(production_url)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# ============================================
# Exception Handlers
# ============================================

def status_code_for(exc: StorageError) -> int:
    """HTTP status for a storage error that reached the request layer"""
    if isinstance(exc, (DuplicateUsername, DuplicateTmdbId)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NotFound):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ConnectionFailure):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError):
    code = status_code_for(exc)
    if code >= 500:
        logger.error(f"Storage failure on {request.method} {request.url.path}: {str(exc)}")
        detail = "Database temporarily unavailable" if code == 503 else "Internal server error"
    else:
        detail = str(exc)
    return JSONResponse(status_code=code, content={"detail": detail})


# ============================================
# Routes
# ============================================

@app.get("/", tags=["Health"])
async def root():
    """Basic health check"""
    return {"message": "Watchlist API", "version": "1.0.0", "status": "healthy"}


app.include_router(status_routes.router)
app.include_router(watchlist.router)
app.include_router(admin.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
