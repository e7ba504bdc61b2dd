"""
Request / Response schemas

對外一律使用 camelCase（沿用前端既有的欄位名稱），內部使用 snake_case
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============ Room ============

class CreateRoomRequest(CamelModel):
    room_id: Optional[str] = Field(default=None, min_length=1, max_length=128)
    # 前端送的是 "Duration"，也接受 "duration"
    duration: int = Field(alias="Duration", gt=0)
    max_members: Optional[int] = Field(default=None, ge=1)
    creator: Optional[str] = None
    staking_amount: Optional[float] = Field(default=None, ge=0)
    staking_token: Optional[str] = Field(default=None, min_length=1, max_length=32)


class CreateRoomResponse(CamelModel):
    success: bool = True
    room_id: str
    duration: int
    max_members: int
    creator: Optional[str]
    staking_amount: float
    staking_token: str
    message: str = "Room created successfully"


class RoomMembershipRequest(CamelModel):
    room_id: str = Field(min_length=1)
    wallet_address: str = Field(min_length=1)


class RoomResponse(CamelModel):
    room_id: str
    users: List[str]
    duration: int
    max_members: int
    creator: Optional[str]
    game_started: bool
    started_at: Optional[datetime]
    game_ended: bool
    winner: Optional[str]
    staking_amount: float
    staking_token: str
    created_at: datetime


class JoinRoomResponse(CamelModel):
    success: bool = True
    message: str = "User successfully joined the room"
    room: RoomResponse
    assigned_duration: int
    user_outcome: str


class StartGameResponse(CamelModel):
    success: bool = True
    started: bool
    room: RoomResponse


class CompletedRoomResponse(CamelModel):
    room_id: str
    users: List[str]
    duration: int
    max_members: int
    creator: Optional[str]
    game_started: bool
    started_at: Optional[datetime]
    game_ended: bool
    winner: Optional[str]
    staking_amount: float
    staking_token: str
    created_at: datetime
    completed_at: datetime


class FailedUpdate(CamelModel):
    wallet_address: str
    error: str


class FailedRecorder(CamelModel):
    handler: str
    error: str


class MakeWinnerResponse(CamelModel):
    success: bool = True
    message: str = "Winner declared and room moved to completed successfully"
    completed_room: CompletedRoomResponse
    failed_updates: List[FailedUpdate] = []
    failed_recorders: List[FailedRecorder] = []


class AvailableRoomResponse(CamelModel):
    room_id: str
    game_started: bool
    total_players: int
    users: List[str]
    players_in_room: int
    duration: int
    available_duration: int
    staking_amount: float
    staking_token: str


class RoomMemberResponse(CamelModel):
    wallet_address: str
    username: str


class RoomDetailsResponse(CamelModel):
    room_id: str
    members: List[RoomMemberResponse]
    duration: int
    remaining_time: int
    game_started: bool
    game_ended: bool
    max_members: int
    current_members: int
    winner: Optional[str]


# ============ User ============

class UserSetupRequest(CamelModel):
    wallet_address: str = Field(min_length=1)
    username: str = Field(min_length=1, max_length=64)


class ParticipationResponse(CamelModel):
    room: str
    is_winner: bool
    game_time: int


class UserResponse(CamelModel):
    wallet_address: str
    username: Optional[str]
    is_staked: bool
    current_room_id: str
    current_room_duration: int
    participated_rooms: List[ParticipationResponse]
    created_at: datetime


class StakeStatusRequest(CamelModel):
    wallet_address: str = Field(min_length=1)
    is_staked: bool


class StakeStatusResponse(CamelModel):
    is_staked: bool


class RoomPlayedResponse(CamelModel):
    room_id: str
    winner: Optional[str]
    duration: int
    completed_at: datetime
    users: List[RoomMemberResponse]


# ============ Staking ============

class StakingRecordRequest(CamelModel):
    wallet_address: str = Field(min_length=1)
    amount: float = Field(gt=0)


class StakingRecordResponse(CamelModel):
    id: int
    wallet_address: str
    amount: float
    timestamp: datetime


# ============ Leaderboard ============

class LeaderboardEntryRequest(CamelModel):
    wallet_address: str = Field(min_length=1)
    kills: int = Field(ge=0)
    score: int
    room_id: str = Field(min_length=1)
    username: str = Field(min_length=1)
    game_time: Optional[str] = None


class LeaderboardEntryResponse(CamelModel):
    id: int
    wallet_address: str
    kills: int
    score: int
    room_id: str
    username: str
    game_time: Optional[str]
    created_at: datetime
