"""
服務層

這個 package 包含純計算邏輯與附屬紀錄，不負責房間狀態轉換：
- TimingService：剩餘時間與 30% 門檻計算
- NamingService：房間 ID 生成
- LeaderboardService：排行榜紀錄
- StakingService：質押紀錄
"""
