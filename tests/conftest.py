import os

# 測試不碰本機的資料庫檔案
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from database import Base, Settings, configure_sqlite_locking, get_db
from main import app


@pytest.fixture()
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def settings():
    return Settings(database_url="sqlite://", store_retry_backoff_seconds=0)


@pytest.fixture()
def strict_settings():
    return Settings(database_url="sqlite://", store_retry_backoff_seconds=0, strict_user_lookup=True)


@pytest.fixture()
def t0():
    return datetime(2026, 1, 1, 12, 0, 0)


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def file_session_factory(tmp_path):
    """
    檔案型 SQLite，給多執行緒的並發測試使用

    每個 transaction 以 BEGIN IMMEDIATE 開始，和正式環境的 SQLite 設定相同
    """
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'lobby.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
        pool_size=20,
        max_overflow=0
    )
    configure_sqlite_locking(file_engine)
    Base.metadata.create_all(bind=file_engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    file_engine.dispose()
