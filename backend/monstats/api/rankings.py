from __future__ import annotations
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from monstats.database import get_db
from monstats.middleware.auth import require_admin
from monstats.schemas.wallet import RecalculateResponse, WeightsResponse, WeightRow
from monstats.services.rankings import recalculate_rankings
from monstats.services.scoring import ScoreWeights, ComponentScores, get_score_breakdown

router = APIRouter(prefix="/api", tags=["rankings"])
logger = logging.getLogger(__name__)


@router.post("/recalculate-rankings", response_model=RecalculateResponse)
async def post_recalculate_rankings(
    _: None = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    logger.info("Starting ranking recalculation...")
    try:
        updated = await recalculate_rankings(db)
    except Exception:
        logger.exception("Error recalculating rankings")
        raise HTTPException(status_code=500, detail="Failed to recalculate rankings")

    message = "Rankings recalculated successfully" if updated else "No users found"
    return RecalculateResponse(
        message=message,
        total_users=updated,
        last_updated=datetime.now(timezone.utc),
    )


@router.get("/scoring/weights", response_model=WeightsResponse)
async def get_scoring_weights():
    weights = ScoreWeights.from_settings()
    rows = get_score_breakdown(ComponentScores(), weights)
    return WeightsResponse(
        weights=[WeightRow(label=r["label"], weight=r["weight"]) for r in rows],
        total=round(sum(asdict(weights).values()), 6),
    )
