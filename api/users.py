"""
User API Endpoints

職責：
1. 使用者設定與查詢
2. 質押狀態
3. 參加過的房間
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import (
    RoomMemberResponse,
    RoomPlayedResponse,
    StakeStatusRequest,
    StakeStatusResponse,
    UserResponse,
    UserSetupRequest,
)
from core.room_manager import RoomManager
from core.user_store import UserStore
from core.exceptions import StoreUnavailable, UserNotFound, UsernameTaken
from api.errors import api_error
from api.room_views import user_response

router = APIRouter(prefix="/api", tags=["users"])
logger = logging.getLogger(__name__)


@router.post("/user/setup", response_model=UserResponse)
def setup_user(user_data: UserSetupRequest, db: Session = Depends(get_db)):
    """
    建立使用者或更新 username

    前置條件：
    - username 沒有被其他錢包使用
    """
    try:
        user, _ = UserStore.setup_user(db, user_data.wallet_address, user_data.username)
        return user_response(user)

    except UsernameTaken as e:
        raise api_error(e, 400)
    except StoreUnavailable as e:
        raise api_error(e, 503)
    except Exception as e:
        logger.error(f"Failed to setup user: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/stake", response_model=UserResponse)
def update_staked_status(stake_data: StakeStatusRequest, db: Session = Depends(get_db)):
    try:
        user = UserStore.set_staked(db, stake_data.wallet_address, stake_data.is_staked)
        return user_response(user)

    except StoreUnavailable as e:
        raise api_error(e, 503)
    except Exception as e:
        logger.error(f"Failed to update stake status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/user/is-staked/{wallet_address}", response_model=StakeStatusResponse)
def get_user_stake_status(wallet_address: str, db: Session = Depends(get_db)):
    user = UserStore.find_by_wallet(db, wallet_address)
    if not user:
        raise api_error(UserNotFound(wallet_address), 404)
    return StakeStatusResponse(is_staked=user.is_staked)


@router.get("/user/rooms-played/{wallet_address}", response_model=List[RoomPlayedResponse])
def get_rooms_played(wallet_address: str, db: Session = Depends(get_db)):
    """
    使用者參加過的已完成房間（附所有成員的 username）

    沒有紀錄時回傳空列表
    """
    try:
        played = RoomManager.get_rooms_played(db, wallet_address)
        return [
            RoomPlayedResponse(
                room_id=room.room_id,
                winner=room.winner,
                duration=room.duration,
                completed_at=room.completed_at,
                users=[
                    RoomMemberResponse(wallet_address=wallet, username=usernames[wallet])
                    for wallet in room.users
                ]
            )
            for room, usernames in played
        ]

    except Exception as e:
        logger.error(f"Failed to fetch rooms played: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/user/{wallet_address}", response_model=UserResponse)
def get_user(wallet_address: str, db: Session = Depends(get_db)):
    user = UserStore.find_by_wallet(db, wallet_address)
    if not user:
        raise api_error(UserNotFound(wallet_address), 404)
    return user_response(user)
