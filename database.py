from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings
from functools import lru_cache, wraps
from typing import List
import logging
import time

from core.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./room_lobby.db"
    default_max_members: int = 6
    default_staking_token: str = "AST"
    # 已開始的房間，剩餘時間低於原時長的這個比例就不再出現在可加入列表
    minimum_remaining_ratio: float = 0.3
    # True：join / make-winner 時使用者不存在就報 UserNotFound，而不是自動建立
    strict_user_lookup: bool = False
    store_retry_attempts: int = 3
    store_retry_backoff_seconds: float = 0.05
    log_level: str = "INFO"
    cors_allow_origins: List[str] = ["*"]

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()


def configure_sqlite_locking(target: Engine) -> Engine:
    """
    讓 SQLite 的每個 transaction 都以 BEGIN IMMEDIATE 開始

    SQLite 沒有行級鎖，SELECT ... FOR UPDATE 會被忽略。
    改成在 transaction 一開始就拿 write lock，同一時間只會有一個 writer，
    等待中的連線交給 busy timeout 處理。

    注意：
        - pysqlite 預設只會在 DML 前自動 BEGIN，這裡改由 SQLAlchemy 的 begin 事件負責
    """
    @event.listens_for(target, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(target, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return target


def build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        # check_same_thread=False：FastAPI 的 threadpool 會跨執行緒使用同一個連線
        new_engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            pool_pre_ping=True
        )
        return configure_sqlite_locking(new_engine)

    return create_engine(database_url, pool_pre_ping=True)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency：提供 Database Session

    使用 yield 確保 session 在請求結束後會被關閉
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def transactional(func):
    """
    Transaction decorator：確保資料庫操作的原子性

    使用方式：
        @transactional
        def some_business_logic(db: Session, ...):
            # 所有 DB 操作都在一個 transaction 內
            room = Room(...)
            db.add(room)
            # 不需要手動 commit，decorator 會處理

    如果函式內發生異常：
        - 自動 rollback
        - 異常會被重新拋出（讓上層處理）

    注意：
        - 第一個參數必須是 db: Session
        - 不要在函式內手動 commit（decorator 會處理）
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        # 找出 db session（可能在 args 或 kwargs）
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper


def with_store_retry(func):
    """
    Retry decorator：資料庫暫時無法使用時重試

    只處理 OperationalError（連線中斷、database is locked ...），
    業務異常和 IntegrityError 直接往上拋。

    使用方式：
        @with_store_retry
        @transactional
        def some_step(db: Session, ...):
            ...

    注意：
        - 必須包在 @transactional 外面，每次重試都是一個新的 transaction
        - 只能包「單一 transaction」的步驟，已經 commit 的多步驟流程不能整段重試
        - 重試用完後拋出 StoreUnavailable
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        current = get_settings()
        attempts = max(current.store_retry_attempts, 1)

        for attempt in range(1, attempts + 1):
            try:
                return func(*args, **kwargs)
            except OperationalError as e:
                if attempt == attempts:
                    logger.error(
                        f"Store unavailable in {func.__name__} after {attempts} attempts: {e}"
                    )
                    raise StoreUnavailable(str(e.orig)) from e

                delay = current.store_retry_backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    f"Store error in {func.__name__} (attempt {attempt}/{attempts}), "
                    f"retrying in {delay:.2f}s: {e.orig}"
                )
                time.sleep(delay)

    return wrapper
