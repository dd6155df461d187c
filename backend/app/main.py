"""
Tiffin Response Engine - FastAPI Application

Main entry point for the meal response backend.

Architecture:
- MealPreference → TimingResolver → TimingInfo (is today's cutoff still ahead?)
- TimingInfo + PastDate guard → ResponseMutator → MealResponse (manual yes/no)
- Cutoff passed → AutoConfirmEngine → pending MealResponses become YES
- Every transition → ResponseTransitionLog (append-only audit)
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .routers import responses_router, preferences_router, scheduler_router
from .database import init_db
from .services.responses import ResponseEngineError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="Tiffin Response Engine",
    description="""
    Tiffin Response Engine - Meal Response Lifecycle API

    Tracks, per customer, date and meal, whether an order is pending,
    confirmed (yes) or declined (no), and auto-confirms pending orders once
    the provider's cutoff time has passed.

    ## Rules
    - Responses for past dates cannot be modified
    - Today's responses close at the meal's cutoff time
    - Auto-confirmation only ever turns PENDING into YES
    - Explicit yes/no decisions are never overwritten by the auto path
    - Every transition records who, when, and whether it was before cutoff
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ResponseEngineError)
async def response_engine_error_handler(request: Request, exc: ResponseEngineError):
    """Structured rejection payload; cutoffTime is shown to the operator verbatim."""
    logger.info(f"{request.method} {request.url.path} rejected: {exc.code}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


# Include routers
app.include_router(preferences_router)
app.include_router(responses_router)
app.include_router(scheduler_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Tiffin Response Engine",
        "version": "1.0.0",
        "description": "Meal Response Lifecycle & Cutoff-Based Auto-Confirmation",
        "docs": "/docs",
        "endpoints": {
            "preferences": "/api/Provider/preferences",
            "daily": "/api/responses/daily",
            "timing": "/api/responses/timing",
            "pending": "/api/responses/pending",
            "response": "/api/response",
            "auto_confirm": "/api/responses/auto-confirm-pending",
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# For running with: python -m app.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=5000)
