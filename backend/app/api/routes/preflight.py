"""CORS Preflight — OPTIONS on any path answers 200 with permissive headers.

Invariants:
    - Registered last so real routes keep their own methods
    - Never touches settings, database, or adapters
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

router = APIRouter(tags=["preflight"])

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": (
        "Content-Type, Authorization, Stripe-Signature, X-Board-Signature"
    ),
}


@router.options("/{path:path}")
async def preflight(path: str):
    return JSONResponse(
        status_code=200,
        content={"message": "Preflight call successful"},
        headers=PREFLIGHT_HEADERS,
    )
