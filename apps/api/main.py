from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from apps.api.napoleon import router as napoleon_router

log = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    log.info("Bonaparte API ready")
    yield


app = FastAPI(title="Bonaparte API", lifespan=_lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(napoleon_router)


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
