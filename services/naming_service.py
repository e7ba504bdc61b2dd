"""
命名服務：生成 Room ID

純計算邏輯，不涉及狀態轉換
"""
import random
import string


def generate_room_id(length: int = 8) -> str:
    """
    生成隨機的房間 ID（小寫英數字）

    用途：
        建立房間時前端沒有提供 roomId

    範例：k3x9ab2q, 0plm4z7w

    注意：
    - 不檢查唯一性（由呼叫者負責）
    - 36^8 ≈ 2.8 兆種可能，碰撞機率極低
    """
    return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))
