# Collector service entry point: receives completed sessions and mistake reports
# vocab_practice/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from vocab_practice.endpoints import (
    practice_sets as practice_sets_router,
    sessions as sessions_router,
    mistakes as mistakes_router,
)
from vocab_practice.services.question_service import question_service
from vocab_practice.utils.config import settings
from vocab_practice.utils.logger import logger
from vocab_practice.utils.db import engine
from vocab_practice.models.records import Base

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Vocab practice collector starting up...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Loading practice sets...")
    question_service.load_practice_sets(settings.practice_sets_dir)

    logger.info("Startup complete.")
    yield
    logger.info("Vocab practice collector shutting down...")
    await engine.dispose()

app = FastAPI(
    title="Vocab Practice Collector",
    description="Stores completed practice sessions and per-word practice mistakes.",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(practice_sets_router.router, prefix="/practice-sets", tags=["Practice Sets"])
app.include_router(sessions_router.router)
app.include_router(mistakes_router.router)

@app.get("/")
async def root():
    return {"message": "Welcome to the Vocab Practice Collector API"}
