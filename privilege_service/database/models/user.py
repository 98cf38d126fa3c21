from sqlalchemy import Column, String, DateTime
from privilege_service import config
from ..database import Base


class User(Base):
    """
    사용자 서비스가 소유하는 사용자 테이블 중, 권한 서비스가 필요로 하는 컬럼만 매핑합니다.
    권한 삭제 시 privilege_id를 기본 권한으로 재할당하는 용도로만 쓰기 작업을 합니다.
    테이블 소유자가 다르므로 외래 키 제약은 걸지 않습니다.
    """
    __tablename__ = config.USER_TABLE
    id = Column(String, primary_key=True)
    privilege_id = Column(String, nullable=True, index=True)
    updated_at = Column(DateTime, nullable=True)
