"""
Room API Endpoints

職責：
1. 可加入房間列表
2. 建立 / 加入房間
3. 開始遊戲、宣告贏家
4. 查詢房間資訊

所有業務邏輯集中在 RoomManager，這裡只做 request 驗證與錯誤轉換
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import Settings, get_db, get_settings
from schemas import (
    AvailableRoomResponse,
    CreateRoomRequest,
    CreateRoomResponse,
    FailedRecorder,
    FailedUpdate,
    JoinRoomResponse,
    MakeWinnerResponse,
    RoomDetailsResponse,
    RoomMembershipRequest,
    RoomResponse,
    StartGameResponse,
)
from core.events import RoomEventBus
from core.room_manager import RoomManager
from core.exceptions import (
    AlreadyInRoom,
    DuplicateRoomId,
    GameAlreadyEnded,
    RoomFull,
    RoomNotFound,
    StoreUnavailable,
    UserNotFound,
    UserNotInRoom,
)
from api.deps import get_event_bus
from api.errors import api_error
from api.room_views import (
    available_room_response,
    completed_room_response,
    room_details_response,
    room_response,
)

router = APIRouter(prefix="/api", tags=["rooms"])
logger = logging.getLogger(__name__)


@router.get("/rooms/available", response_model=List[AvailableRoomResponse])
def fetch_available_rooms(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    """
    可加入的房間

    條件：
    - 尚未結束、未滿
    - 已開始的房間剩餘時間 >= 原時長的 30%
    """
    try:
        rooms = RoomManager.list_available_rooms(db, settings=settings)
        return [available_room_response(room) for room in rooms]

    except StoreUnavailable as e:
        raise api_error(e, 503)
    except Exception as e:
        logger.error(f"Failed to fetch available rooms: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/rooms/create", response_model=CreateRoomResponse)
def create_room(
    room_data: CreateRoomRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """
    建立房間

    前置條件：
    - roomId 未被使用（沒有提供就自動生成）
    """
    try:
        room = RoomManager.create_room(
            db,
            duration=room_data.duration,
            creator=room_data.creator,
            room_id=room_data.room_id,
            max_members=room_data.max_members,
            staking_amount=room_data.staking_amount,
            staking_token=room_data.staking_token,
            settings=settings
        )

        return CreateRoomResponse(
            room_id=room.room_id,
            duration=room.duration,
            max_members=room.max_members,
            creator=room.creator,
            staking_amount=room.staking_amount,
            staking_token=room.staking_token
        )

    except DuplicateRoomId as e:
        raise api_error(e, 400)
    except StoreUnavailable as e:
        raise api_error(e, 503)
    except Exception as e:
        logger.error(f"Failed to create room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/room/join", response_model=JoinRoomResponse)
def join_room(
    join_data: RoomMembershipRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """
    加入房間

    前置條件（依序）：
    - 房間存在（404）
    - 遊戲尚未結束（400）
    - 尚未加入（400）
    - 房間未滿（400）

    返回：
        更新後的房間 + assignedDuration（加入者的剩餘秒數）
    """
    try:
        logger.info(f"Joining room {join_data.room_id} for user {join_data.wallet_address}")
        result = RoomManager.join_room(
            db,
            join_data.room_id,
            join_data.wallet_address,
            settings=settings
        )

        return JoinRoomResponse(
            room=room_response(result.room),
            assigned_duration=result.assigned_duration,
            user_outcome=result.user_outcome.value
        )

    except (RoomNotFound, UserNotFound) as e:
        raise api_error(e, 404)
    except (GameAlreadyEnded, AlreadyInRoom, RoomFull) as e:
        raise api_error(e, 400)
    except StoreUnavailable as e:
        raise api_error(e, 503)
    except Exception as e:
        logger.error(f"Failed to join room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/rooms/start-game", response_model=StartGameResponse)
def start_game(start_data: RoomMembershipRequest, db: Session = Depends(get_db)):
    """
    開始遊戲（冪等）

    join 已經會開始計時；這個 endpoint 給其他加入流程補上計時
    """
    try:
        room, started = RoomManager.start_game(db, start_data.room_id, start_data.wallet_address)
        return StartGameResponse(started=started, room=room_response(room))

    except RoomNotFound as e:
        raise api_error(e, 404)
    except UserNotInRoom as e:
        raise api_error(e, 400)
    except StoreUnavailable as e:
        raise api_error(e, 503)
    except Exception as e:
        logger.error(f"Failed to start game: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/rooms/make-winner", response_model=MakeWinnerResponse)
def make_winner(
    winner_data: RoomMembershipRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    events: RoomEventBus = Depends(get_event_bus)
):
    """
    宣告贏家

    效果：
    - 房間移到封存，進行中的房間被刪除
    - 每位成員新增一筆參賽紀錄（只有贏家 isWinner=true）

    返回：
        封存後的房間；個別成員更新失敗列在 failedUpdates，recorder 失敗列在 failedRecorders
    """
    try:
        result = RoomManager.make_winner(
            db,
            winner_data.room_id,
            winner_data.wallet_address,
            settings=settings,
            events=events
        )

        return MakeWinnerResponse(
            completed_room=completed_room_response(result.completed_room),
            failed_updates=[
                FailedUpdate(wallet_address=f.wallet_address, error=f.error)
                for f in result.failed_updates
            ],
            failed_recorders=[
                FailedRecorder(handler=f.handler, error=f.error)
                for f in result.recorder_failures
            ]
        )

    except RoomNotFound as e:
        raise api_error(e, 404)
    except (UserNotInRoom, GameAlreadyEnded) as e:
        raise api_error(e, 400)
    except StoreUnavailable as e:
        raise api_error(e, 503)
    except Exception as e:
        logger.error(f"Failed to declare winner: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/rooms/{room_id}", response_model=RoomDetailsResponse)
def get_room_details(room_id: str, db: Session = Depends(get_db)):
    """
    房間詳情：成員 username、剩餘時間
    """
    try:
        return room_details_response(RoomManager.get_room_details(db, room_id))

    except RoomNotFound as e:
        raise api_error(e, 404)
    except Exception as e:
        logger.error(f"Failed to get room details: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/room/{room_id}", response_model=RoomResponse)
def get_room(room_id: str, db: Session = Depends(get_db)):
    try:
        return room_response(RoomManager.get_room_by_id(db, room_id))

    except RoomNotFound as e:
        raise api_error(e, 404)
    except Exception as e:
        logger.error(f"Failed to get room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
