from sqlalchemy import Column, String, Boolean, DateTime
from privilege_service import config
from ..database import Base

CAPABILITY_FLAGS = (
    "view_all_users",
    "create_user",
    "manage_privileges",
    "delete_user",
    "block_user",
    "send_reset_password_email",
)

KIND_DEFAULT = "default"
KIND_ROOT = "root"


class Privilege(Base):
    """
    사용자 계정에 부여되는 이름 있는 권한 플래그 묶음입니다.
    (예: 'Support' = 전체 사용자 조회 + 사용자 차단).

    'default'와 'root' 권한은 시스템에 각각 하나만 존재하며,
    kind 컬럼의 UNIQUE 제약으로 데이터베이스가 이를 보장합니다.
    일반 권한의 kind는 NULL입니다.
    """
    __tablename__ = config.PRIVILEGE_TABLE
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)

    view_all_users = Column(Boolean, nullable=False, default=False)
    create_user = Column(Boolean, nullable=False, default=False)
    manage_privileges = Column(Boolean, nullable=False, default=False)
    delete_user = Column(Boolean, nullable=False, default=False)
    block_user = Column(Boolean, nullable=False, default=False)
    send_reset_password_email = Column(Boolean, nullable=False, default=False)

    is_default = Column(Boolean, nullable=False, default=False, index=True)
    is_root = Column(Boolean, nullable=False, default=False, index=True)
    kind = Column(String, unique=True, nullable=True)

    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    @property
    def is_protected(self) -> bool:
        return bool(self.is_default or self.is_root)
