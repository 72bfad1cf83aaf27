# app/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import VERSION, settings

#Import Routers
from app.api.v1 import analytics
from app.api.v1 import tools

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
# Per-request client logging drowns out the booking logs
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Square Booking Tools API",
    description="Booking tool server for voice agents, backed by Square Appointments",
    version=VERSION,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
#Include routers
app.include_router(tools.router, prefix="/tools", tags=["tools"])
# Legacy tool URLs without the /tools prefix
app.include_router(tools.router, include_in_schema=False)
app.include_router(analytics.router, tags=["analytics"])

logger.info(
    f"🚀 Square booking tools v{VERSION} ({settings.square_environment}, "
    f"location {settings.location_id}, timezone {settings.timezone})"
)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Square Booking Tools API",
        "version": VERSION,
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True
    )
