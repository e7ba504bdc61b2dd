"""
Leaderboard API Endpoints
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import LeaderboardEntryRequest, LeaderboardEntryResponse
from core.exceptions import StoreUnavailable
from services import leaderboard_service
from api.errors import api_error
from api.room_views import leaderboard_entry_response

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])
logger = logging.getLogger(__name__)


@router.post("/add", response_model=LeaderboardEntryResponse)
def add_leaderboard_entry(entry_data: LeaderboardEntryRequest, db: Session = Depends(get_db)):
    try:
        entry = leaderboard_service.add_entry(
            db,
            wallet_address=entry_data.wallet_address,
            kills=entry_data.kills,
            score=entry_data.score,
            room_id=entry_data.room_id,
            username=entry_data.username,
            game_time=entry_data.game_time
        )
        return leaderboard_entry_response(entry)

    except StoreUnavailable as e:
        raise api_error(e, 503)
    except Exception as e:
        logger.error(f"Failed to add leaderboard entry: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/wallet/{wallet_address}", response_model=List[LeaderboardEntryResponse])
def get_leaderboard_by_wallet(wallet_address: str, db: Session = Depends(get_db)):
    entries = leaderboard_service.entries_by_wallet(db, wallet_address)
    return [leaderboard_entry_response(entry) for entry in entries]


@router.get("/room/{room_id}", response_model=List[LeaderboardEntryResponse])
def get_leaderboard_by_room(room_id: str, db: Session = Depends(get_db)):
    """同一房間的紀錄，分數高的在前"""
    entries = leaderboard_service.entries_by_room(db, room_id)
    return [leaderboard_entry_response(entry) for entry in entries]
