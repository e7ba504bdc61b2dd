"""
資料模型

- Room / RoomMember：進行中的房間與成員（成員依加入順序排列）
- CompletedRoom：宣告贏家後封存的房間
- User / Participation：使用者與參賽紀錄
- StakingRecord / LeaderboardEntry：只新增不修改的紀錄
- EventLog：房間生命週期事件
"""
from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base
from services.timing_service import utcnow


class RoomEventType(str, Enum):
    ROOM_CREATED = "ROOM_CREATED"
    PLAYER_JOINED = "PLAYER_JOINED"
    GAME_STARTED = "GAME_STARTED"
    ROOM_COMPLETED = "ROOM_COMPLETED"


class Room(Base):
    __tablename__ = "rooms"

    room_id = Column(String(128), primary_key=True)
    duration = Column(Integer, nullable=False)
    max_members = Column(Integer, nullable=False, default=6)
    # users 的長度，條件式 UPDATE 用它判斷是否已滿
    member_count = Column(Integer, nullable=False, default=0)
    creator = Column(String(128), nullable=True)
    game_started = Column(Boolean, nullable=False, default=False)
    started_at = Column(DateTime, nullable=True)
    game_ended = Column(Boolean, nullable=False, default=False)
    winner = Column(String(128), nullable=True)
    staking_amount = Column(Float, nullable=False, default=0)
    staking_token = Column(String(32), nullable=False, default="AST")
    created_at = Column(DateTime, nullable=False, default=utcnow)

    members = relationship(
        "RoomMember",
        back_populates="room",
        order_by="RoomMember.position",
        cascade="all, delete-orphan"
    )

    @property
    def users(self):
        return [member.wallet_address for member in self.members]


class RoomMember(Base):
    __tablename__ = "room_members"
    __table_args__ = (
        UniqueConstraint("room_id", "wallet_address", name="uq_room_member_wallet"),
        UniqueConstraint("room_id", "position", name="uq_room_member_position"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(String(128), ForeignKey("rooms.room_id", ondelete="CASCADE"), nullable=False, index=True)
    wallet_address = Column(String(128), nullable=False)
    position = Column(Integer, nullable=False)
    joined_at = Column(DateTime, nullable=False, default=utcnow)

    room = relationship("Room", back_populates="members")


class CompletedRoom(Base):
    __tablename__ = "completed_rooms"

    room_id = Column(String(128), primary_key=True)
    users = Column(JSON, nullable=False, default=list)
    duration = Column(Integer, nullable=False)
    max_members = Column(Integer, nullable=False)
    creator = Column(String(128), nullable=True)
    game_started = Column(Boolean, nullable=False)
    started_at = Column(DateTime, nullable=True)
    game_ended = Column(Boolean, nullable=False, default=True)
    winner = Column(String(128), nullable=True)
    staking_amount = Column(Float, nullable=False, default=0)
    staking_token = Column(String(32), nullable=False)
    created_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=False, default=utcnow)


class User(Base):
    __tablename__ = "users"

    wallet_address = Column(String(128), primary_key=True)
    # join 時自動建立的使用者沒有 username
    username = Column(String(64), unique=True, nullable=True, index=True)
    is_staked = Column(Boolean, nullable=False, default=False)
    current_room_id = Column(String(128), nullable=False, default="")
    current_room_duration = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    participations = relationship(
        "Participation",
        back_populates="user",
        order_by="Participation.id",
        cascade="all, delete-orphan"
    )


class Participation(Base):
    __tablename__ = "participations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_address = Column(String(128), ForeignKey("users.wallet_address"), nullable=False, index=True)
    room_id = Column(String(128), nullable=False, index=True)
    is_winner = Column(Boolean, nullable=False, default=False)
    # 房間的原始總時長，不是實際遊戲時間
    game_time = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="participations")


class StakingRecord(Base):
    __tablename__ = "staking_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_address = Column(String(128), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    timestamp = Column(DateTime, nullable=False, default=utcnow)


class LeaderboardEntry(Base):
    __tablename__ = "leaderboard"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_address = Column(String(128), nullable=False, index=True)
    kills = Column(Integer, nullable=False)
    score = Column(Integer, nullable=False)
    room_id = Column(String(128), nullable=False, index=True)
    username = Column(String(64), nullable=False)
    game_time = Column(String(32), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class EventLog(Base):
    __tablename__ = "event_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # 不設 FK：房間完成後會從 rooms 刪除
    room_id = Column(String(128), nullable=False, index=True)
    event_type = Column(String(32), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=utcnow)
