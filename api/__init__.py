"""
API 層

FastAPI routers：只負責 request 驗證、呼叫 core、把業務異常轉成 HTTP 狀態碼
"""
