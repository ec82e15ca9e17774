"""
Main application entry point - FastAPI app instance.
Run with: uvicorn jarvi.main:app --reload
"""

from fastapi import FastAPI

from jarvi.core.config import settings
from jarvi.routers import chat

# ---------------------------------------------------------------------------
# CREATE FASTAPI APPLICATION
# ---------------------------------------------------------------------------
app = FastAPI(
    title=settings.APP_NAME,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ---------------------------------------------------------------------------
# REGISTER ROUTERS
# ---------------------------------------------------------------------------
# chat.router: POST /chat, GET /chat/stats
app.include_router(chat.router)


# ---------------------------------------------------------------------------
# HEALTH CHECK ENDPOINT
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
def health_check():
    """
    Liveness probe. Does not contact Google.

    Returns:
        {"status": "ok"}
    """
    return {"status": "ok"}
