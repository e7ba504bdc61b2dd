"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- Store：Room / User 的持久化操作（含原子性的條件更新）
- Manager：管理 Room 的完整生命週期
- Events：記錄事件並通知 recorder
- Locks：並發控制工具
"""
