"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理

每個異常都有固定的 code，API 層直接放進 response body，前端不需要解析訊息文字
"""


class RoomLobbyException(Exception):
    """所有房間大廳異常的基類"""
    code = "ROOM_LOBBY_ERROR"


# ============ Room 相關異常 ============

class RoomNotFound(RoomLobbyException):
    """房間不存在"""
    code = "ROOM_NOT_FOUND"

    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class DuplicateRoomId(RoomLobbyException):
    """房間 ID 已被使用（進行中或已封存）"""
    code = "DUPLICATE_ROOM_ID"

    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room ID {room_id} already exists")


class GameAlreadyEnded(RoomLobbyException):
    """遊戲已經結束（已經宣告贏家）"""
    code = "GAME_ALREADY_ENDED"

    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Game in room {room_id} has already ended")


class AlreadyInRoom(RoomLobbyException):
    """使用者已經在房間內"""
    code = "ALREADY_IN_ROOM"

    def __init__(self, room_id, wallet_address):
        self.room_id = room_id
        self.wallet_address = wallet_address
        super().__init__(f"User {wallet_address} already in room {room_id}")


class RoomFull(RoomLobbyException):
    """房間人數已滿"""
    code = "ROOM_FULL"

    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} is full")


# ============ User 相關異常 ============

class UserNotInRoom(RoomLobbyException):
    """使用者不是房間成員"""
    code = "USER_NOT_IN_ROOM"

    def __init__(self, room_id, wallet_address):
        self.room_id = room_id
        self.wallet_address = wallet_address
        super().__init__(f"User {wallet_address} not in room {room_id}")


class UserNotFound(RoomLobbyException):
    """使用者不存在"""
    code = "USER_NOT_FOUND"

    def __init__(self, wallet_address):
        self.wallet_address = wallet_address
        super().__init__(f"User {wallet_address} not found")


class UsernameTaken(RoomLobbyException):
    """使用者名稱已被其他錢包使用"""
    code = "USERNAME_TAKEN"

    def __init__(self, username):
        self.username = username
        super().__init__(f"Username {username} already taken")


# ============ Store 相關異常 ============

class StoreUnavailable(RoomLobbyException):
    """資料庫暫時無法使用（重試後仍失敗）"""
    code = "STORE_UNAVAILABLE"
