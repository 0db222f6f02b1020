# storefront/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from storefront.core.config import get_settings
from storefront.core.errors import register_exception_handlers
from storefront.sessions import get_session_registry

# Routers
from storefront.routers.catalog import router as catalog_router
from storefront.routers.cart import router as cart_router
from storefront.routers.checkout import router as checkout_router
from storefront.routers.admin import router as admin_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Nothing to connect: Supabase clients are created on first use.

    Shutdown:
      - Close every browsing session so late auth/upload results are dropped.
    """
    logger.info("🔄 Startup: %s ready (Supabase at %s)", settings.PROJECT_NAME, settings.SUPABASE_URL)
    yield
    registry = get_session_registry()
    logger.info("🛑 Shutdown: closing %d browsing session(s)", len(registry))
    registry.close_all()


app = FastAPI(
    title=settings.PROJECT_NAME or "Storefront API",
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
# Credentials are allowed so the session cookie travels with requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Versioned API prefix, e.g. /api/v1
app.include_router(catalog_router, prefix=settings.API_V1_STR)
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(checkout_router, prefix=settings.API_V1_STR)
app.include_router(admin_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "storefront-backend"}
