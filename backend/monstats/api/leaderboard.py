from __future__ import annotations
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from monstats.config import get_settings
from monstats.database import get_db
from monstats.schemas.wallet import LeaderboardResponse, LeaderboardEntry, PaginationInfo
from monstats.services.leaderboard import InvalidLeaderboardQuery, LeaderboardQuery, query_leaderboard

settings = get_settings()
router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])


@router.get("", response_model=LeaderboardResponse)
async def get_leaderboard(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, alias="pageSize", ge=1, le=settings.max_page_size),
    search: Optional[str] = Query(None, max_length=42),
    sort_by: str = Query("totalScore", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    db: AsyncSession = Depends(get_db),
):
    query = LeaderboardQuery(
        page=page,
        page_size=page_size,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    # Reject bad sort params before touching the database
    try:
        query.validate()
    except InvalidLeaderboardQuery as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = await query_leaderboard(db, query)

    return LeaderboardResponse(
        leaderboard=[LeaderboardEntry(**e) for e in result.entries],
        pagination=PaginationInfo(
            current_page=result.current_page,
            page_size=result.page_size,
            total_users=result.total_users,
            total_pages=result.total_pages,
            has_next_page=result.has_next_page,
            has_previous_page=result.has_previous_page,
        ),
        sort_by=result.sort_by,
        sort_order=result.sort_order,
        search=result.search,
        last_updated=result.last_updated,
    )
