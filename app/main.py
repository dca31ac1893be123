"""
FastAPI application for the Sales Operations backend.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from app.core.logging import setup_logging_from_config
from app.core.database import get_database
from app.api.routes import health, orders, provider
from app.api.routes.health import API_VERSION

# Initialize logging
setup_logging_from_config()

# Initialize database
get_database()

# Create FastAPI app
app = FastAPI(
    title="Sales Operations API",
    description="Order listing, operator edits and Yampi order sync",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow the dashboard frontend to access)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/api")
app.include_router(orders.router, prefix="/api")
app.include_router(provider.router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Sales Operations API",
        "version": API_VERSION,
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
