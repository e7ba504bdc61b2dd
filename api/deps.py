"""
API 共用的 dependency
"""
from fastapi import Request

from core.events import RoomEventBus


def get_event_bus(request: Request) -> RoomEventBus:
    """app 啟動時建立的事件分派器（見 main.py）"""
    return request.app.state.event_bus
