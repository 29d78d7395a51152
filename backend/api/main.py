import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.core.config import settings
from backend.core.db import init_db
from backend.api.routers import scanning_router
from backend.api.routers.scanning import _get_gateway, reset_scan_state

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown."""
    # Startup: make sure the snapshot table exists, then restore the session
    init_db()
    _get_gateway()

    yield  # Application runs here

    # Shutdown: drop pending typed input, the session is already persisted
    reset_scan_state()


app = FastAPI(title="Scan Reconcile", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(scanning_router)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "version": "1.0.0"}
