"""
Leaderboard service.

Append-only leaderboard log. Clients post one entry per player per game;
when a room completes, the recorder stamps the room's game time onto the
entries that were posted without one.
"""
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from models import LeaderboardEntry
from database import transactional, with_store_retry

logger = logging.getLogger(__name__)


@with_store_retry
@transactional
def add_entry(
    db: Session,
    wallet_address: str,
    kills: int,
    score: int,
    room_id: str,
    username: str,
    game_time: Optional[str] = None
) -> LeaderboardEntry:
    entry = LeaderboardEntry(
        wallet_address=wallet_address,
        kills=kills,
        score=score,
        room_id=room_id,
        username=username,
        game_time=game_time
    )
    db.add(entry)
    db.flush()

    logger.info(f"Leaderboard entry for {wallet_address} in room {room_id}: kills={kills}, score={score}")
    return entry


def entries_by_wallet(db: Session, wallet_address: str) -> List[LeaderboardEntry]:
    return db.query(LeaderboardEntry).filter(
        LeaderboardEntry.wallet_address == wallet_address
    ).order_by(LeaderboardEntry.id).all()


def entries_by_room(db: Session, room_id: str) -> List[LeaderboardEntry]:
    return db.query(LeaderboardEntry).filter(
        LeaderboardEntry.room_id == room_id
    ).order_by(LeaderboardEntry.score.desc(), LeaderboardEntry.id).all()


@with_store_retry
@transactional
def record_room_completion(db: Session, event) -> int:
    """
    ROOM_COMPLETED recorder.

    The recorded game time is the room's original total duration, not the
    actual elapsed play time. Entries that already carry a game time are
    left untouched.

    Returns the number of stamped entries.
    """
    game_time = event.data.get("game_time")
    if game_time is None:
        return 0

    stamped = db.query(LeaderboardEntry).filter(
        LeaderboardEntry.room_id == event.room_id,
        LeaderboardEntry.game_time.is_(None)
    ).update({LeaderboardEntry.game_time: str(game_time)}, synchronize_session=False)

    if stamped:
        logger.info(f"Stamped game time {game_time}s on {stamped} leaderboard entries of room {event.room_id}")
    return stamped
