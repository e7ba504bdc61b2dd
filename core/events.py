"""
房間事件：寫入 EventLog，並在 commit 後通知 recorder

兩層：
1. record_event()：在 store 的 transaction 內新增 EventLog（和狀態變更一起 commit）
2. RoomEventBus：commit 之後把事件分派給訂閱的 recorder（排行榜等）

RoomEventBus 在 app 啟動時建立一次，透過 dependency 注入，不使用模組層級的全域狀態
"""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List
import logging

from sqlalchemy.orm import Session

from models import EventLog, RoomEventType

logger = logging.getLogger(__name__)


@dataclass
class RoomEvent:
    event_type: RoomEventType
    room_id: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RecorderFailure:
    handler: str
    error: str


RoomEventHandler = Callable[[Session, RoomEvent], None]


def record_event(db: Session, room_id: str, event_type: RoomEventType, data: Dict[str, Any]) -> EventLog:
    """
    新增一筆 EventLog（不 commit，由呼叫者的 transaction 負責）
    """
    event = EventLog(
        room_id=room_id,
        event_type=event_type.value,
        data=data
    )
    db.add(event)
    return event


class RoomEventBus:
    """commit 後的事件分派器"""

    def __init__(self):
        self._handlers: Dict[RoomEventType, List[RoomEventHandler]] = defaultdict(list)

    def subscribe(self, event_type: RoomEventType, handler: RoomEventHandler) -> None:
        self._handlers[event_type].append(handler)

    def handlers_for(self, event_type: RoomEventType) -> List[RoomEventHandler]:
        return list(self._handlers.get(event_type, []))

    def publish(self, db: Session, event: RoomEvent) -> List[RecorderFailure]:
        """
        把事件交給所有訂閱者

        recorder 失敗不會影響已經 commit 的房間狀態：
        每個失敗都記錄 log 並收集起來回傳給呼叫者

        返回：
            失敗的 recorder 列表（全部成功時為空）
        """
        failures: List[RecorderFailure] = []
        for handler in self.handlers_for(event.event_type):
            name = getattr(handler, "__qualname__", repr(handler))
            try:
                handler(db, event)
            except Exception as e:
                logger.error(
                    f"Recorder {name} failed for {event.event_type.value} "
                    f"in room {event.room_id}: {e}",
                    exc_info=True
                )
                failures.append(RecorderFailure(handler=name, error=str(e)))
        return failures


def build_event_bus() -> RoomEventBus:
    """建立預設的事件分派器（掛上排行榜 recorder）"""
    from services.leaderboard_service import record_room_completion

    bus = RoomEventBus()
    bus.subscribe(RoomEventType.ROOM_COMPLETED, record_room_completion)
    return bus
