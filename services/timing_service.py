"""
時間窗口服務：房間剩餘時間與可加入門檻

純計算邏輯，不涉及狀態轉換

所有「房間還剩多少時間」的計算都從同一個 started_at 推導，
沒有伺服器端計時器。可加入列表、join 回應、房間詳情都呼叫這裡，
確保每個呼叫點算出來的倒數一致。

時間一律使用 naive UTC datetime（SQLite 不保存時區）。
"""
import math
from datetime import datetime, timezone
from typing import Optional

DEFAULT_MINIMUM_REMAINING_RATIO = 0.3


def utcnow() -> datetime:
    """目前時間（naive UTC）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def elapsed_seconds(started_at: datetime, now: datetime) -> int:
    """
    從 started_at 到 now 經過的秒數（無條件捨去）

    時鐘誤差造成 now 早於 started_at 時回傳 0
    """
    delta = (_as_naive_utc(now) - _as_naive_utc(started_at)).total_seconds()
    return max(math.floor(delta), 0)


def remaining_seconds(duration: int, started_at: Optional[datetime], now: datetime) -> int:
    """
    計算房間剩餘秒數

    規則：
    - 尚未開始（started_at 為 None）：剩餘 = duration
    - 已開始：剩餘 = duration - elapsed
    - 結果一律限制在 [0, duration]

    範例：
        remaining_seconds(100, None, now) -> 100
        remaining_seconds(100, now - 71s, now) -> 29
        remaining_seconds(100, now - 500s, now) -> 0
    """
    if started_at is None:
        return duration
    remaining = duration - elapsed_seconds(started_at, now)
    return min(max(remaining, 0), duration)


def meets_minimum_requirement(
    duration: int,
    available_duration: int,
    game_started: bool,
    ratio: float = DEFAULT_MINIMUM_REMAINING_RATIO
) -> bool:
    """
    30% 門檻：已開始的房間剩餘時間不足原時長的 ratio 就不再提供加入

    尚未開始的房間一律符合

    範例（ratio=0.3）：
        duration=100, available=31 -> True
        duration=100, available=30 -> True
        duration=100, available=29 -> False
    """
    if not game_started:
        return True
    return available_duration >= duration * ratio
