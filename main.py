"""Main application file - Production Monitoring System"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import app_settings

# Import routers
from api_routes import router as api_router, get_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        app.dependency_overrides.get(get_store, get_store)().ensure_schema()
    except Exception as e:
        logger.error(f"Could not verify database schema: {e}")
    yield


# Initialize FastAPI app
app = FastAPI(title="Production Monitoring System", version="3.0.0", lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(api_router, tags=["api"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
        log_level="info"
    )
