from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from monstats.config import get_settings
from monstats.database import init_db

settings = get_settings()
logger = logging.getLogger(__name__)

worker_tasks: list[asyncio.Task] = []


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await init_db()

    # Fail at boot rather than on the first request if the weight table is bad
    from monstats.services.scoring import ScoreWeights

    logger.info(f"Score weights: {ScoreWeights.from_settings()}")

    if not settings.admin_token:
        logger.warning("ADMIN_TOKEN not set: /api/recalculate-rankings is unauthenticated")

    from monstats.workers.recalc_worker import run_recalc_worker

    worker_tasks.append(asyncio.create_task(run_recalc_worker()))

    yield

    # Shutdown
    for task in worker_tasks:
        task.cancel()
    await asyncio.gather(*worker_tasks, return_exceptions=True)
    worker_tasks.clear()


app = FastAPI(
    title="MonStats Wallet Leaderboard",
    description="Percentile-normalized wallet activity scores and leaderboard",
    version="1.0.0",
    lifespan=lifespan,
)

_origins = [settings.frontend_url.rstrip("/"), "http://localhost:3000", "http://localhost:3001"]
if settings.extra_cors_origins:
    _origins.extend([o.strip().rstrip("/") for o in settings.extra_cors_origins.split(",") if o.strip()])
# Deduplicate
_origins = list(dict.fromkeys(_origins))

logger.info("CORS allowed origins: %s", _origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route modules
from monstats.api import stats, leaderboard, rankings

app.include_router(stats.router)
app.include_router(leaderboard.router)
app.include_router(rankings.router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
