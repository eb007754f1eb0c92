"""
FastAPI application initialization for the pharmacy finder API.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core import app_state, config
from app.routes.medicine import router as medicine_router
from app.routes.pharmacy import router as pharmacy_router
from app.routes.recommendation import router as recommendation_router


logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Catalog load and inventory seeding happen once, before the first request
    app_state.initialize()
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Pharmacy Finder API",
    description="Medicine search, pharmacy ranking, price comparison and substitute finder",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(medicine_router)
app.include_router(pharmacy_router)
app.include_router(recommendation_router)


@app.get("/health")
def health():
    """
    Application health check endpoint.
    """
    return {"status": "healthy", "service": "pharmacy_finder"}
