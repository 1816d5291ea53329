import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from speech_emotion.config import settings
from speech_emotion.api import emotion

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    # Ensure storage directories exist on startup
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    if settings.remote_available:
        logger.info("Remote classifier enabled (%s)", settings.gemini_model)
    else:
        logger.info("No Gemini API key configured, using heuristic analysis only")
    yield


app = FastAPI(
    title="Speech Emotion Recognition API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(emotion.router, prefix="/api/emotion", tags=["emotion"])


@app.get("/api/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}
