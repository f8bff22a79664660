from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ythelper.api import health, info, download, subtitles
from ythelper.config.settings import config
from ythelper.core.logging import logger, setup_logging
from ythelper.core.request_id import RequestIdMiddleware
from ythelper.core.state import state
from ythelper.infra.rate_limit import RateLimitMiddleware
from ythelper.infra.redis import init_redis, close_redis
from ythelper.services.ytdlp import probe_version

setup_logging(config.logging)


@asynccontextmanager
async def lifespan(app: FastAPI):
    state.redis = await init_redis()
    state.ytdlp_version = await probe_version()
    logger.info(f"yt-dlp version: {state.ytdlp_version}")
    yield
    await close_redis()


app = FastAPI(
    title=config.api.title,
    version=config.api.version,
    docs_url="/docs" if config.api.debug else None,
    redoc_url=None,
    lifespan=lifespan,
)

# Outermost first: request id, then CORS, then rate limiting
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "RateLimit-Limit", "RateLimit-Remaining", "RateLimit-Reset", "Retry-After"],
)
app.add_middleware(RequestIdMiddleware)

# Routes
app.include_router(health.router, tags=["Health"])
app.include_router(info.router, tags=["Info"])
app.include_router(download.router, tags=["Download"])
app.include_router(subtitles.router, tags=["Subtitles"])


def run() -> None:
    """Console entry point"""
    logger.info(f"IBI yt helper listening on {config.api.port}")
    uvicorn.run(app, host=config.api.host, port=config.api.port, log_level=config.logging.level.lower())


if __name__ == "__main__":
    run()
