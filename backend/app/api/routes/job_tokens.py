"""Job Token Routes — check the reference token carried in a payment link.

Invariants:
    - Comparison is constant-time (core/signatures.py); a wrong token is {"valid": false}
    - Non-hex token → 400 MALFORMED_TOKEN; missing secret → 500 NOT_CONFIGURED
    - Amount parsed as Decimal so "150", "150.0" and "150.00" verify alike
"""

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, Query

from app.config import Settings, get_settings
from app.core.signatures import validate_token

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/job-tokens", tags=["job-tokens"])


@router.get("/verify")
async def verify_job_token(
    job_id: str = Query(..., alias="jobId", min_length=1),
    amount: Decimal = Query(...),
    token: str = Query(...),
    settings: Settings = Depends(get_settings),
):
    valid = validate_token(job_id, amount, token, settings.job_token_secret)
    if not valid:
        logger.warning(
            f"Job token mismatch for job {job_id}", extra={"job_id": job_id},
        )
    return {"valid": valid}
