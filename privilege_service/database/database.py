from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool


def build_engine(database_url: str):
    """
    데이터베이스 URL로 SQLAlchemy 엔진을 생성합니다.

    connect_args는 SQLite에서만 필요합니다. (thread-safe 설정)
    인메모리 SQLite는 모든 세션이 하나의 연결을 공유해야 테이블이 유지됩니다.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def build_session_factory(engine):
    # autocommit=False, autoflush=False로 설정하여, 명시적으로 commit을 호출해야 DB에 반영됩니다.
    # expire_on_commit=False: commit 이후에도 반환된 객체를 직렬화할 수 있도록 합니다.
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


# 모든 모델 클래스가 상속받을 Base 클래스
Base = declarative_base()
