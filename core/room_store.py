"""
Room Store：房間的持久化操作

職責：
1. 查詢（可加入的房間、單一房間、封存房間）
2. 新增房間（ID 不可重複）
3. 原子性加入成員（容量 + 重複成員檢查）
4. 原子性開始遊戲、標記結束 + 封存 + 刪除

並發原則：
- 所有「檢查再寫入」都以條件式 UPDATE 完成，靠影響的列數判斷誰贏得競爭
- 先讀取一次只是為了回報正確的錯誤種類，真正的保證在 UPDATE 的 WHERE 條件
"""
from datetime import datetime
from typing import List, Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from models import CompletedRoom, Room, RoomMember, RoomEventType
from core.events import record_event
from core.locks import with_room_lock
from core.exceptions import (
    AlreadyInRoom,
    DuplicateRoomId,
    GameAlreadyEnded,
    RoomFull,
    RoomNotFound,
    UserNotInRoom
)
from database import transactional, with_store_retry

logger = logging.getLogger(__name__)


class RoomStore:
    """Room 持久化操作"""

    @staticmethod
    def find_available(db: Session) -> List[Room]:
        """
        所有尚未結束且未滿的房間（依建立時間排序）

        成員一次載入，列表不會每個房間各查一次
        """
        return db.query(Room).options(selectinload(Room.members)).filter(
            Room.game_ended == False,
            Room.member_count < Room.max_members
        ).order_by(Room.created_at, Room.room_id).all()

    @staticmethod
    def find_by_id(db: Session, room_id: str) -> Optional[Room]:
        return db.query(Room).filter(Room.room_id == room_id).first()

    @staticmethod
    def find_completed(db: Session, room_id: str) -> Optional[CompletedRoom]:
        return db.query(CompletedRoom).filter(CompletedRoom.room_id == room_id).first()

    @staticmethod
    def find_completed_many(db: Session, room_ids: List[str]) -> List[CompletedRoom]:
        if not room_ids:
            return []
        return db.query(CompletedRoom).filter(
            CompletedRoom.room_id.in_(room_ids)
        ).order_by(CompletedRoom.completed_at).all()

    @staticmethod
    @with_store_retry
    @transactional
    def insert_if_absent(db: Session, room: Room) -> Room:
        """
        新增房間

        前置條件：
            room_id 不存在於進行中的房間，也不存在於封存

        異常：
            DuplicateRoomId: ID 已被使用（包含同時建立的競爭者）
        """
        if RoomStore.find_by_id(db, room.room_id) or RoomStore.find_completed(db, room.room_id):
            raise DuplicateRoomId(room.room_id)

        db.add(room)
        try:
            db.flush()
        except IntegrityError as e:
            # 同時建立同一個 ID，另一個請求先 commit
            raise DuplicateRoomId(room.room_id) from e

        record_event(db, room.room_id, RoomEventType.ROOM_CREATED, {
            "creator": room.creator,
            "duration": room.duration,
            "max_members": room.max_members
        })

        logger.info(f"Created room {room.room_id} (duration={room.duration}s, max_members={room.max_members})")
        return room

    @staticmethod
    @with_store_retry
    @transactional
    def atomic_append_user(db: Session, room_id: str, wallet_address: str, now: datetime) -> Room:
        """
        原子性加入成員

        前置條件（依序檢查，各自拋出不同異常）：
        1. Room 必須存在          -> RoomNotFound
        2. 遊戲尚未結束           -> GameAlreadyEnded
        3. 錢包不在 users 內       -> AlreadyInRoom
        4. users 長度 < maxMembers -> RoomFull

        流程：
        1. 鎖定並讀取 Room，依序檢查前置條件
        2. 條件式 UPDATE：member_count + 1、game_started = True
           （WHERE game_ended = False AND member_count < max_members）
        3. 條件式 UPDATE：started_at = now（WHERE started_at IS NULL）
        4. 新增 RoomMember（unique constraint 擋下重複加入）
        5. 記錄 PLAYER_JOINED 事件

        返回：
            更新後的 Room

        注意：
            - game_started 每次成功加入都設為 True
            - started_at 只在第一次設定，之後加入不會重設
        """
        # 1. 取得並鎖定 Room
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)
        if room.game_ended:
            raise GameAlreadyEnded(room_id)
        if wallet_address in room.users:
            raise AlreadyInRoom(room_id, wallet_address)
        if room.member_count >= room.max_members:
            raise RoomFull(room_id)

        # 2. 容量保證：條件式 UPDATE
        updated = db.query(Room).filter(
            Room.room_id == room_id,
            Room.game_ended == False,
            Room.member_count < Room.max_members
        ).update(
            {
                Room.member_count: Room.member_count + 1,
                Room.game_started: True
            },
            synchronize_session=False
        )
        if updated == 0:
            db.refresh(room)
            logger.warning(f"Lost join race for room {room_id} (wallet={wallet_address})")
            if room.game_ended:
                raise GameAlreadyEnded(room_id)
            raise RoomFull(room_id)

        # 3. 第一次加入才開始計時
        db.query(Room).filter(
            Room.room_id == room_id,
            Room.started_at.is_(None)
        ).update({Room.started_at: now}, synchronize_session=False)

        db.refresh(room)

        # 4. 新增成員（位置 = 加入順序）
        room.members.append(RoomMember(
            wallet_address=wallet_address,
            position=room.member_count - 1,
            joined_at=now
        ))
        try:
            db.flush()
        except IntegrityError as e:
            raise AlreadyInRoom(room_id, wallet_address) from e

        # 5. 記錄事件
        record_event(db, room_id, RoomEventType.PLAYER_JOINED, {
            "wallet_address": wallet_address,
            "players_in_room": room.member_count
        })

        logger.info(
            f"User {wallet_address} joined room {room_id} "
            f"({room.member_count}/{room.max_members})"
        )
        return room

    @staticmethod
    @with_store_retry
    @transactional
    def atomic_start(db: Session, room_id: str, wallet_address: str, now: datetime) -> Tuple[Room, bool]:
        """
        原子性開始遊戲（冪等）

        前置條件：
        1. Room 必須存在         -> RoomNotFound
        2. 錢包必須是房間成員     -> UserNotInRoom

        返回：
            (Room, 這次呼叫是否真的開始了遊戲)
        """
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)
        if wallet_address not in room.users:
            raise UserNotInRoom(room_id, wallet_address)

        updated = db.query(Room).filter(
            Room.room_id == room_id,
            Room.game_started == False
        ).update(
            {
                Room.game_started: True,
                Room.started_at: now
            },
            synchronize_session=False
        )
        db.refresh(room)

        started = updated > 0
        if started:
            record_event(db, room_id, RoomEventType.GAME_STARTED, {
                "started_by": wallet_address
            })
            logger.info(f"Game started in room {room_id} by {wallet_address}")

        return room, started

    @staticmethod
    @with_store_retry
    @transactional
    def atomic_mark_ended_and_archive(db: Session, room_id: str, winner: str, now: datetime) -> CompletedRoom:
        """
        宣告贏家：標記結束 + 封存 + 刪除（同一個 transaction）

        前置條件：
        1. Room 必須存在        -> RoomNotFound
        2. 贏家必須是房間成員    -> UserNotInRoom
        3. 遊戲尚未結束          -> GameAlreadyEnded（同時宣告的競爭者）

        流程：
        1. 條件式 UPDATE：winner、game_ended = True（WHERE game_ended = False）
        2. 複製到 CompletedRoom
        3. 刪除進行中的 Room（成員一併刪除）
        4. 記錄 ROOM_COMPLETED 事件

        返回：
            封存後的 CompletedRoom
        """
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)
        if winner not in room.users:
            raise UserNotInRoom(room_id, winner)

        # 1. 只有一個請求能把 game_ended 從 False 改成 True
        updated = db.query(Room).filter(
            Room.room_id == room_id,
            Room.game_ended == False
        ).update(
            {
                Room.winner: winner,
                Room.game_ended: True
            },
            synchronize_session=False
        )
        if updated == 0:
            logger.warning(f"Room {room_id} already ended, rejecting winner {winner}")
            raise GameAlreadyEnded(room_id)

        db.refresh(room)

        # 2. 封存
        completed = RoomStore.archive(db, room, now)

        # 3. 刪除
        RoomStore.delete_by_id(db, room_id)

        # 4. 記錄事件
        record_event(db, room_id, RoomEventType.ROOM_COMPLETED, {
            "winner": winner,
            "users": list(completed.users),
            "game_time": completed.duration
        })

        logger.info(f"Room {room_id} completed, winner={winner}, archived with {len(completed.users)} users")
        return completed

    @staticmethod
    def archive(db: Session, room: Room, now: datetime) -> CompletedRoom:
        """複製 Room 到封存（不 commit）"""
        completed = CompletedRoom(
            room_id=room.room_id,
            users=list(room.users),
            duration=room.duration,
            max_members=room.max_members,
            creator=room.creator,
            game_started=room.game_started,
            started_at=room.started_at,
            game_ended=room.game_ended,
            winner=room.winner,
            staking_amount=room.staking_amount,
            staking_token=room.staking_token,
            created_at=room.created_at,
            completed_at=now
        )
        db.add(completed)
        return completed

    @staticmethod
    def delete_by_id(db: Session, room_id: str) -> None:
        """刪除進行中的 Room 與成員（不 commit）"""
        room = RoomStore.find_by_id(db, room_id)
        if room:
            db.delete(room)
            db.flush()
