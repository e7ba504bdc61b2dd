from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

import models  # noqa: F401  註冊所有資料表
from database import Base, engine, settings
from core.events import build_event_bus
from api import rooms, users, leaderboard, staking

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 在應用啟動時建立資料庫表
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")
    yield
    # Shutdown: 釋放連線池
    engine.dispose()


app = FastAPI(
    title="Room Lobby API",
    description="Room lifecycle backend for the staking game lobby",
    version="1.0.0",
    lifespan=lifespan
)

# 事件分派器只建立一次，透過 api.deps.get_event_bus 注入
app.state.event_bus = build_event_bus()

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(rooms.router)
app.include_router(users.router)
app.include_router(leaderboard.router)
app.include_router(staking.router)


@app.get("/")
def root():
    return {"message": "Room Lobby API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
