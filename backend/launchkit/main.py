import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from launchkit import database, models
from launchkit.config import redis_client, settings
from launchkit.logging_config import setup_logging

logger = logging.getLogger(__name__)


# ===================================================================
# LIFESPAN
# ===================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    try:
        async with database.async_engine.begin() as conn:
            await conn.run_sync(models.Base.metadata.create_all)

        logger.info("🚀 LaunchKit STARTED | Jito bundle launcher ready")
        yield
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise
    finally:
        await redis_client.close()
        await database.async_engine.dispose()


app = FastAPI(
    title="LaunchKit API",
    description="Funds bundle wallets and launches pump.fun tokens as atomic Jito bundles.",
    version="0.1.0",
    lifespan=lifespan,
)

if settings.ENVIRONMENT == "development":
    allowed_origins = ["*"]
else:
    allowed_origins = [
        "http://localhost:3000",
        "http://localhost:5173",   # Vite default
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600
)

# Import routers AFTER app creation to avoid circular imports
from launchkit.routers import projects  # noqa: E402

app.include_router(projects.router)


@app.get("/health")
async def health():
    return {"status": "ok", "environment": settings.ENVIRONMENT}
