"""
User Store：使用者的持久化操作

職責：
1. 查詢使用者
2. join 後更新 current room（明確回報是新建還是更新）
3. 房間完成後清除 current room 並新增參賽紀錄
4. 使用者設定（username）與質押狀態

strict=True 時，使用者不存在就拋出 UserNotFound，不會自動建立
"""
from enum import Enum
from typing import List, Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import Participation, User
from core.locks import with_user_lock
from core.exceptions import UserNotFound, UsernameTaken
from database import transactional, with_store_retry

logger = logging.getLogger(__name__)


class UserWriteOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


class UserStore:
    """User 持久化操作"""

    @staticmethod
    def find_by_wallet(db: Session, wallet_address: str) -> Optional[User]:
        return db.query(User).filter(User.wallet_address == wallet_address).first()

    @staticmethod
    def find_by_wallets(db: Session, wallet_addresses: List[str]) -> List[User]:
        if not wallet_addresses:
            return []
        return db.query(User).filter(User.wallet_address.in_(wallet_addresses)).all()

    @staticmethod
    def usernames_for(db: Session, wallet_addresses: List[str]) -> dict:
        """錢包地址 -> username（沒有 username 的不列出）"""
        return {
            user.wallet_address: user.username
            for user in UserStore.find_by_wallets(db, wallet_addresses)
            if user.username
        }

    @staticmethod
    def _lock_or_create(db: Session, wallet_address: str, strict: bool) -> Tuple[User, UserWriteOutcome]:
        user = with_user_lock(wallet_address, db).first()
        if user:
            return user, UserWriteOutcome.UPDATED
        if strict:
            raise UserNotFound(wallet_address)

        # 不存在的列鎖不住，同時建立同一個錢包時由 unique constraint 決定誰先
        user = User(wallet_address=wallet_address, is_staked=False)
        try:
            with db.begin_nested():
                db.add(user)
                db.flush()
        except IntegrityError:
            logger.warning(f"User {wallet_address} was created concurrently, updating existing record")
            return with_user_lock(wallet_address, db).one(), UserWriteOutcome.UPDATED

        logger.info(f"Created user record for {wallet_address}")
        return user, UserWriteOutcome.CREATED

    @staticmethod
    @with_store_retry
    @transactional
    def upsert_current_room(
        db: Session,
        wallet_address: str,
        room_id: str,
        remaining_seconds: int,
        strict: bool = False
    ) -> Tuple[User, UserWriteOutcome]:
        """
        設定使用者目前所在的房間與剩餘時間

        參數：
            wallet_address: 錢包地址
            room_id: 房間 ID
            remaining_seconds: 加入當下的剩餘秒數（快照，不是權威值）
            strict: True 時使用者不存在會拋出 UserNotFound

        返回：
            (User, CREATED | UPDATED)
        """
        user, outcome = UserStore._lock_or_create(db, wallet_address, strict)
        user.current_room_id = room_id
        user.current_room_duration = remaining_seconds
        db.flush()

        logger.info(
            f"User {wallet_address} current room set to {room_id} "
            f"({remaining_seconds}s remaining, {outcome.value})"
        )
        return user, outcome

    @staticmethod
    @with_store_retry
    @transactional
    def clear_current_room_and_append_history(
        db: Session,
        wallet_address: str,
        room_id: str,
        is_winner: bool,
        game_time: int,
        strict: bool = False
    ) -> Tuple[User, UserWriteOutcome]:
        """
        房間完成後更新使用者

        流程：
        1. 清除 current_room_id / current_room_duration
        2. 新增一筆參賽紀錄 {room, is_winner, game_time}

        返回：
            (User, CREATED | UPDATED)
        """
        user, outcome = UserStore._lock_or_create(db, wallet_address, strict)
        user.current_room_id = ""
        user.current_room_duration = 0
        user.participations.append(Participation(
            room_id=room_id,
            is_winner=is_winner,
            game_time=game_time
        ))
        db.flush()

        logger.debug(f"Appended room {room_id} to history of {wallet_address} (winner={is_winner})")
        return user, outcome

    @staticmethod
    @with_store_retry
    @transactional
    def setup_user(db: Session, wallet_address: str, username: str) -> Tuple[User, UserWriteOutcome]:
        """
        建立使用者或更新 username

        異常：
            UsernameTaken: username 已被其他錢包使用
        """
        holder = db.query(User).filter(User.username == username).first()
        if holder and holder.wallet_address != wallet_address:
            raise UsernameTaken(username)

        user, outcome = UserStore._lock_or_create(db, wallet_address, strict=False)
        user.username = username
        try:
            db.flush()
        except IntegrityError as e:
            raise UsernameTaken(username) from e

        logger.info(f"User {wallet_address} set up as {username} ({outcome.value})")
        return user, outcome

    @staticmethod
    @with_store_retry
    @transactional
    def set_staked(db: Session, wallet_address: str, is_staked: bool) -> User:
        """更新質押狀態（使用者不存在就建立）"""
        user, _ = UserStore._lock_or_create(db, wallet_address, strict=False)
        user.is_staked = is_staked
        db.flush()

        logger.info(f"User {wallet_address} staked status -> {is_staked}")
        return user
