"""
ORM / dataclass -> response schema
"""
from models import CompletedRoom, LeaderboardEntry, Room, StakingRecord, User
from core.room_manager import AvailableRoom, RoomDetails
from schemas import (
    AvailableRoomResponse,
    CompletedRoomResponse,
    LeaderboardEntryResponse,
    ParticipationResponse,
    RoomDetailsResponse,
    RoomMemberResponse,
    RoomResponse,
    StakingRecordResponse,
    UserResponse,
)


def room_response(room: Room) -> RoomResponse:
    return RoomResponse(
        room_id=room.room_id,
        users=room.users,
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
    )


def completed_room_response(room: CompletedRoom) -> CompletedRoomResponse:
    return CompletedRoomResponse(
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
        completed_at=room.completed_at,
    )


def available_room_response(room: AvailableRoom) -> AvailableRoomResponse:
    return AvailableRoomResponse(
        room_id=room.room_id,
        game_started=room.game_started,
        total_players=room.total_players,
        users=room.users,
        players_in_room=room.players_in_room,
        duration=room.duration,
        available_duration=room.available_duration,
        staking_amount=room.staking_amount,
        staking_token=room.staking_token,
    )


def room_details_response(details: RoomDetails) -> RoomDetailsResponse:
    return RoomDetailsResponse(
        room_id=details.room_id,
        members=[
            RoomMemberResponse(wallet_address=m.wallet_address, username=m.username)
            for m in details.members
        ],
        duration=details.duration,
        remaining_time=details.remaining_time,
        game_started=details.game_started,
        game_ended=details.game_ended,
        max_members=details.max_members,
        current_members=details.current_members,
        winner=details.winner,
    )


def user_response(user: User) -> UserResponse:
    return UserResponse(
        wallet_address=user.wallet_address,
        username=user.username,
        is_staked=user.is_staked,
        current_room_id=user.current_room_id,
        current_room_duration=user.current_room_duration,
        participated_rooms=[
            ParticipationResponse(room=p.room_id, is_winner=p.is_winner, game_time=p.game_time)
            for p in user.participations
        ],
        created_at=user.created_at,
    )


def staking_record_response(record: StakingRecord) -> StakingRecordResponse:
    return StakingRecordResponse(
        id=record.id,
        wallet_address=record.wallet_address,
        amount=record.amount,
        timestamp=record.timestamp,
    )


def leaderboard_entry_response(entry: LeaderboardEntry) -> LeaderboardEntryResponse:
    return LeaderboardEntryResponse(
        id=entry.id,
        wallet_address=entry.wallet_address,
        kills=entry.kills,
        score=entry.score,
        room_id=entry.room_id,
        username=entry.username,
        game_time=entry.game_time,
        created_at=entry.created_at,
    )
