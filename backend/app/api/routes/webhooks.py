"""Webhook Routes — inbound payment, board and job ledger notifications.

Invariants:
    - The raw request body is handed to the router untouched (signatures cover bytes)
    - Only POST is routed; other methods fall through to 405
    - Routes contain no business logic: WebhookRouter decides status and body
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.api.dependencies import get_webhook_router
from app.services.webhook_router import WebhookRouter

router = APIRouter(prefix="/webhook", tags=["webhooks"])


@router.post("")
async def receive_webhook(
    request: Request,
    webhook_router: WebhookRouter = Depends(get_webhook_router),
):
    """Shared endpoint — channel chosen by signature header."""
    result = await webhook_router.handle(await request.body(), request.headers)
    return JSONResponse(status_code=result.status_code, content=result.body)


@router.post("/payments")
async def receive_payment_webhook(
    request: Request,
    webhook_router: WebhookRouter = Depends(get_webhook_router),
):
    result = await webhook_router.handle_payment(
        await request.body(), request.headers,
    )
    return JSONResponse(status_code=result.status_code, content=result.body)


@router.post("/board")
async def receive_board_webhook(
    request: Request,
    webhook_router: WebhookRouter = Depends(get_webhook_router),
):
    result = await webhook_router.handle_board(
        await request.body(), request.headers,
    )
    return JSONResponse(status_code=result.status_code, content=result.body)


@router.post("/ledger")
async def receive_ledger_webhook(
    request: Request,
    webhook_router: WebhookRouter = Depends(get_webhook_router),
):
    """Job ledger status notifications, authenticated by export key."""
    result = await webhook_router.handle_ledger(await request.body())
    return JSONResponse(status_code=result.status_code, content=result.body)
