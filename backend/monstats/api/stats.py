from __future__ import annotations
import asyncio
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from monstats.database import get_db
from monstats.schemas.wallet import WalletStatsResponse, WalletMetricsOut, WalletScoresOut
from monstats.services.upstream import NoActivityError
from monstats.services.wallet_stats import InvalidWalletAddress, normalize_address, refresh_wallet_stats

router = APIRouter(prefix="/api/stats", tags=["stats"])
logger = logging.getLogger(__name__)

DISCONNECT_POLL_SECONDS = 0.5


async def _cancel_on_disconnect(request: Request, task: asyncio.Task):
    while not task.done():
        if await request.is_disconnected():
            logger.info("Client disconnected, cancelling wallet stats fetch")
            task.cancel()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


@router.get("", response_model=WalletStatsResponse)
async def get_wallet_stats(
    request: Request,
    wallet: str = Query(""),
    db: AsyncSession = Depends(get_db),
):
    try:
        address = normalize_address(wallet)
    except InvalidWalletAddress:
        raise HTTPException(status_code=400, detail="Invalid wallet address")

    task = asyncio.create_task(refresh_wallet_stats(db, address))
    watcher = asyncio.create_task(_cancel_on_disconnect(request, task))
    try:
        stats = await task
    except asyncio.CancelledError:
        # Client went away; nothing was persisted for this request
        raise
    except NoActivityError:
        raise HTTPException(status_code=404, detail="No transactions found for this wallet")
    except Exception:
        logger.exception(f"Error processing wallet stats for {address}")
        raise HTTPException(status_code=500, detail="Internal server error")
    finally:
        watcher.cancel()

    return WalletStatsResponse(
        wallet_address=stats.wallet_address,
        metrics=WalletMetricsOut.model_validate(stats.metrics),
        scores=WalletScoresOut.model_validate(stats.scores) if stats.scores else None,
        transaction_history=stats.metrics.transaction_history,
        persisted=stats.persisted,
    )
