"""
API 層的錯誤轉換

業務異常 -> HTTPException，body 固定為 {"detail": {"code": ..., "message": ...}}
"""
from fastapi import HTTPException

from core.exceptions import RoomLobbyException


def api_error(exc: RoomLobbyException, status_code: int) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"code": exc.code, "message": str(exc)},
    )
