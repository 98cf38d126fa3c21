# tests/database/test_db_init.py
import logging
import pytest
from sqlalchemy import inspect

from privilege_service import config
from privilege_service.database import models
from privilege_service.database.database import build_engine, build_session_factory
from privilege_service.database.db_init import initialize_db

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    yield engine
    engine.dispose()

@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)

def privilege_count(session_factory) -> int:
    session = session_factory()
    count = session.query(models.Privilege).count()
    session.close()
    return count

# ===================================================================
#  시작 시 초기화 테스트
# ===================================================================
def test_initialize_db_creates_only_privilege_table(engine, session_factory):
    """초기화가 권한 테이블만 만들고 사용자 서비스의 users 테이블은 건드리지 않는지 테스트합니다."""
    # === Act ===
    initialize_db(engine, session_factory)

    # === Assert ===
    inspector = inspect(engine)
    assert inspector.has_table(config.PRIVILEGE_TABLE)
    assert not inspector.has_table(config.USER_TABLE)
    assert privilege_count(session_factory) == 2

def test_initialize_db_twice_keeps_singletons(engine, session_factory, caplog):
    """재시작처럼 두 번 초기화해도 권한이 두 개뿐이고, 이미 존재함이 INFO로 기록되는지 테스트합니다."""
    # === Arrange ===
    initialize_db(engine, session_factory)
    caplog.clear()
    caplog.set_level(logging.INFO, logger="privilege_service")

    # === Act ===
    initialize_db(engine, session_factory)

    # === Assert ===
    assert privilege_count(session_factory) == 2
    info_messages = [r.getMessage() for r in caplog.records if r.levelno == logging.INFO]
    assert "Default privilege already exists" in info_messages
    assert "Root privilege already exists" in info_messages
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]
