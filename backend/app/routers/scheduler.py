"""
Scheduler API Routes

Internal endpoints for system-automatic tasks, called by an external cron.
There is no in-process timer: each call evaluates the current time against
every provider's cutoff once.
"""
import os

from fastapi import APIRouter, Depends, HTTPException, Header
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.responses import AutoConfirmSweep


router = APIRouter(prefix="/internal", tags=["scheduler"])


# =============================================================================
# INTERNAL API KEY VALIDATION
# =============================================================================

INTERNAL_API_KEY = os.getenv("INTERNAL_API_KEY", "scheduler-internal-key-change-in-production")


async def verify_internal_key(x_internal_key: str = Header(...)):
    """Verify internal API key for scheduler endpoints."""
    if x_internal_key != INTERNAL_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid internal API key")
    return True


# =============================================================================
# SCHEDULER ENDPOINTS (SYSTEM-ONLY)
# =============================================================================

@router.post("/auto-confirm-sweep", response_model=dict)
async def run_auto_confirm_sweep(
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """
    Auto-confirm today's pending orders for every slot past its cutoff.

    System-automatic - no provider confirmation required.
    Explicit yes/no responses are never changed.
    """
    sweep = AutoConfirmSweep(db)

    result = sweep.run()

    return {
        "task": "auto_confirm_sweep",
        **result,
    }
