"""
並發控制工具

提供 Database-level 的鎖定機制，防止競態條件（Race Condition）

主要使用 PostgreSQL 的 SELECT ... FOR UPDATE 來實現悲觀鎖（Pessimistic Locking）

SQLite 會忽略 FOR UPDATE，改由 database.configure_sqlite_locking
讓每個 transaction 以 BEGIN IMMEDIATE 開始
"""
from sqlalchemy.orm import Session, Query

from models import Room, User


def with_room_lock(room_id: str, db: Session) -> Query:
    """
    鎖定一個 Room（行級鎖）

    使用場景：
    - join / start-game / make-winner 前讀取 Room
    - 需要確保 Room 在整個 transaction 期間不被其他請求修改

    範例：
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)

    參數：
        room_id: Room ID
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 或 .one() 來取得結果）

    注意：
        - nowait=False 表示如果鎖被佔用，會等待
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
        - 鎖只是第一道防線，容量與狀態仍由條件式 UPDATE 保證
    """
    return db.query(Room).filter(
        Room.room_id == room_id
    ).with_for_update(nowait=False)


def with_user_lock(wallet_address: str, db: Session) -> Query:
    """
    鎖定一個 User（行級鎖）

    使用場景：
    - 更新 current room 或新增參賽紀錄時

    參數：
        wallet_address: 錢包地址
        db: SQLAlchemy Session

    返回：
        Query object
    """
    return db.query(User).filter(
        User.wallet_address == wallet_address
    ).with_for_update(nowait=False)
