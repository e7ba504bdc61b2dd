"""
Room Manager：管理 Room 的完整生命週期

職責：
1. 列出可加入的房間（含剩餘時間計算、30% 門檻）
2. 建立 Room
3. 加入 Room（第一位加入者開始計時）
4. 開始遊戲（備用入口，冪等）
5. 宣告贏家（封存 + 刪除 + 更新所有成員的參賽紀錄）
6. 查詢 Room 資訊

原則：
- Manager 本身不保存狀態，資料庫是唯一的真實來源
- Room 的狀態變更和 User 的更新是分開的 transaction
- 宣告贏家時，封存 commit 之後就不會回滾；個別使用者更新失敗只會被收集回報
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import CompletedRoom, Room, RoomEventType
from core.events import RecorderFailure, RoomEvent, RoomEventBus
from core.room_store import RoomStore
from core.user_store import UserStore, UserWriteOutcome
from core.exceptions import RoomLobbyException, RoomNotFound
from database import Settings, get_settings
from services.naming_service import generate_room_id
from services.timing_service import meets_minimum_requirement, remaining_seconds, utcnow

logger = logging.getLogger(__name__)

UNKNOWN_USERNAME = "Unknown"


@dataclass
class AvailableRoom:
    room_id: str
    game_started: bool
    total_players: int
    users: List[str]
    players_in_room: int
    duration: int
    available_duration: int
    staking_amount: float
    staking_token: str


@dataclass
class JoinResult:
    room: Room
    assigned_duration: int
    user_outcome: UserWriteOutcome


@dataclass
class FanoutFailure:
    wallet_address: str
    error: str


@dataclass
class WinnerResult:
    completed_room: CompletedRoom
    failed_updates: List[FanoutFailure] = field(default_factory=list)
    recorder_failures: List[RecorderFailure] = field(default_factory=list)


@dataclass
class RoomMemberDetail:
    wallet_address: str
    username: str


@dataclass
class RoomDetails:
    room_id: str
    members: List[RoomMemberDetail]
    duration: int
    remaining_time: int
    game_started: bool
    game_ended: bool
    max_members: int
    current_members: int
    winner: Optional[str]


class RoomManager:
    """Room 生命週期管理器"""

    @staticmethod
    def list_available_rooms(
        db: Session,
        settings: Optional[Settings] = None,
        now: Optional[datetime] = None
    ) -> List[AvailableRoom]:
        """
        列出可加入的房間（每次呼叫重新計算，不寫入資料庫）

        流程：
        1. 取出尚未結束且未滿的房間
        2. 計算 available_duration（已開始的房間扣掉經過時間）
        3. 過濾掉剩餘時間低於 30% 門檻的房間

        參數：
            db: SQLAlchemy Session
            settings: 設定（門檻比例）
            now: 目前時間（測試可注入）

        返回：
            AvailableRoom 列表
        """
        settings = settings or get_settings()
        now = now or utcnow()

        available = []
        for room in RoomStore.find_available(db):
            available_duration = remaining_seconds(
                room.duration,
                room.started_at if room.game_started else None,
                now
            )
            if not meets_minimum_requirement(
                room.duration,
                available_duration,
                room.game_started,
                settings.minimum_remaining_ratio
            ):
                continue

            available.append(AvailableRoom(
                room_id=room.room_id,
                game_started=room.game_started,
                total_players=room.max_members,
                users=room.users,
                players_in_room=len(room.users),
                duration=room.duration,
                available_duration=available_duration,
                staking_amount=room.staking_amount,
                staking_token=room.staking_token
            ))

        logger.debug(f"{len(available)} rooms available")
        return available

    @staticmethod
    def create_room(
        db: Session,
        duration: int,
        creator: Optional[str],
        room_id: Optional[str] = None,
        max_members: Optional[int] = None,
        staking_amount: Optional[float] = None,
        staking_token: Optional[str] = None,
        settings: Optional[Settings] = None
    ) -> Room:
        """
        建立新房間

        預設值：
            max_members: settings.default_max_members（6）
            staking_amount: 0
            staking_token: settings.default_staking_token（AST）
            room_id: 沒有提供就隨機生成

        異常：
            DuplicateRoomId: room_id 已被使用
        """
        settings = settings or get_settings()

        if not room_id:
            room_id = generate_room_id()
            while RoomStore.find_by_id(db, room_id) or RoomStore.find_completed(db, room_id):
                room_id = generate_room_id()
                logger.warning(f"Room id collision detected, regenerating: {room_id}")

        room = Room(
            room_id=room_id,
            duration=duration,
            max_members=max_members or settings.default_max_members,
            member_count=0,
            creator=creator,
            game_started=False,
            game_ended=False,
            staking_amount=staking_amount if staking_amount is not None else 0,
            staking_token=staking_token or settings.default_staking_token
        )
        return RoomStore.insert_if_absent(db, room)

    @staticmethod
    def join_room(
        db: Session,
        room_id: str,
        wallet_address: str,
        settings: Optional[Settings] = None,
        now: Optional[datetime] = None
    ) -> JoinResult:
        """
        加入房間

        流程：
        1. Room Store 原子性加入（檢查存在、未結束、未重複、未滿）
        2. 計算加入者的剩餘時間
        3. User Store 更新 current room（獨立 transaction）

        異常：
            RoomNotFound / GameAlreadyEnded / AlreadyInRoom / RoomFull
            UserNotFound: strict_user_lookup 開啟且使用者不存在
                （此時成員已經加入房間，兩邊狀態會不一致）

        返回：
            JoinResult（更新後的 Room、assigned_duration、使用者是新建還是更新）
        """
        settings = settings or get_settings()
        now = now or utcnow()

        # 1. 加入房間
        room = RoomStore.atomic_append_user(db, room_id, wallet_address, now)

        # 2. 剩餘時間
        assigned_duration = remaining_seconds(room.duration, room.started_at, now)

        # 3. 更新使用者
        _, outcome = UserStore.upsert_current_room(
            db,
            wallet_address,
            room_id,
            assigned_duration,
            strict=settings.strict_user_lookup
        )

        return JoinResult(room=room, assigned_duration=assigned_duration, user_outcome=outcome)

    @staticmethod
    def start_game(
        db: Session,
        room_id: str,
        wallet_address: str,
        now: Optional[datetime] = None
    ) -> Tuple[Room, bool]:
        """
        開始遊戲（冪等）

        join 已經會開始計時，這是給其他加入流程（例如先完成質押）使用的備用入口

        異常：
            RoomNotFound: Room 不存在
            UserNotInRoom: 錢包不是成員

        返回：
            (Room, 這次呼叫是否真的開始了遊戲)
        """
        return RoomStore.atomic_start(db, room_id, wallet_address, now or utcnow())

    @staticmethod
    def make_winner(
        db: Session,
        room_id: str,
        wallet_address: str,
        settings: Optional[Settings] = None,
        events: Optional[RoomEventBus] = None,
        now: Optional[datetime] = None
    ) -> WinnerResult:
        """
        宣告贏家（狀態轉換 active -> completed）

        流程：
        1. 標記結束 + 封存 + 刪除（同一個 transaction）
        2. 逐一更新每位成員：清除 current room，新增參賽紀錄
           （game_time 記錄的是房間原始時長）
        3. 通知 recorder

        步驟 2、3 的失敗只會收集回報，不會回滾步驟 1

        異常：
            RoomNotFound / UserNotInRoom / GameAlreadyEnded

        返回：
            WinnerResult
        """
        settings = settings or get_settings()
        now = now or utcnow()

        # 1. 封存（commit 之後就不再重試）
        completed = RoomStore.atomic_mark_ended_and_archive(db, room_id, wallet_address, now)

        # 2. 更新每位成員
        failed_updates: List[FanoutFailure] = []
        for member in completed.users:
            try:
                UserStore.clear_current_room_and_append_history(
                    db,
                    member,
                    room_id,
                    is_winner=(member == wallet_address),
                    game_time=completed.duration,
                    strict=settings.strict_user_lookup
                )
            except (RoomLobbyException, SQLAlchemyError) as e:
                logger.error(
                    f"Failed to update history of {member} for room {room_id}: {e}",
                    exc_info=True
                )
                failed_updates.append(FanoutFailure(wallet_address=member, error=str(e)))

        # 3. 通知 recorder
        recorder_failures: List[RecorderFailure] = []
        if events is not None:
            recorder_failures = events.publish(db, RoomEvent(
                event_type=RoomEventType.ROOM_COMPLETED,
                room_id=room_id,
                data={
                    "winner": wallet_address,
                    "users": list(completed.users),
                    "game_time": completed.duration
                }
            ))

        if failed_updates:
            logger.warning(
                f"Room {room_id} archived but {len(failed_updates)} user updates failed"
            )

        return WinnerResult(
            completed_room=completed,
            failed_updates=failed_updates,
            recorder_failures=recorder_failures
        )

    @staticmethod
    def get_room_by_id(db: Session, room_id: str) -> Room:
        """
        透過 ID 取得進行中的 Room

        異常：
            RoomNotFound: Room 不存在
        """
        room = RoomStore.find_by_id(db, room_id)
        if not room:
            raise RoomNotFound(room_id)
        return room

    @staticmethod
    def get_room_details(db: Session, room_id: str, now: Optional[datetime] = None) -> RoomDetails:
        """
        Room 詳情：成員 username 與剩餘時間

        沒有 username 的成員顯示為 Unknown

        異常：
            RoomNotFound: Room 不存在
        """
        room = RoomManager.get_room_by_id(db, room_id)
        usernames = UserStore.usernames_for(db, room.users)

        remaining = remaining_seconds(
            room.duration,
            room.started_at if room.game_started else None,
            now or utcnow()
        )

        return RoomDetails(
            room_id=room.room_id,
            members=[
                RoomMemberDetail(wallet_address=wallet, username=usernames.get(wallet, UNKNOWN_USERNAME))
                for wallet in room.users
            ],
            duration=room.duration,
            remaining_time=remaining,
            game_started=room.game_started,
            game_ended=room.game_ended,
            max_members=room.max_members,
            current_members=len(room.users),
            winner=room.winner
        )

    @staticmethod
    def get_rooms_played(db: Session, wallet_address: str) -> List[Tuple[CompletedRoom, Dict[str, str]]]:
        """
        使用者參加過的已完成房間，附上所有成員的 username

        返回：
            [(CompletedRoom, {wallet: username}), ...]，依完成時間排序
        """
        user = UserStore.find_by_wallet(db, wallet_address)
        if not user:
            return []

        room_ids = [p.room_id for p in user.participations]
        rooms = RoomStore.find_completed_many(db, room_ids)

        wallets = sorted({wallet for room in rooms for wallet in room.users})
        usernames = UserStore.usernames_for(db, wallets)

        return [
            (room, {wallet: usernames.get(wallet, UNKNOWN_USERNAME) for wallet in room.users})
            for room in rooms
        ]
