from .database import Base
from . import models
from privilege_service.repositories.sqlalchemy import SqlalchemyPrivilegeRepository, SqlalchemyUserRepository
from privilege_service.services.exceptions import AlreadyExistsError
from privilege_service.services.privilege_service import PrivilegeService
from privilege_service.utils import get_logger

log = get_logger(__name__)


def initialize_db(engine, session_factory):
    """
    권한 테이블을 생성하고, default/root 권한을 생성합니다.

    서비스가 시작될 때마다 호출됩니다. 두 권한이 이미 있는 것은 정상 상태이므로
    AlreadyExistsError는 INFO 로그만 남기고 넘어갑니다.
    """
    # 권한 테이블만 생성합니다. users 테이블은 사용자 서비스가 관리합니다.
    Base.metadata.create_all(bind=engine, tables=[models.Privilege.__table__])
    log.info("Privilege table ready.")

    db = session_factory()
    try:
        privilege_service = PrivilegeService(
            SqlalchemyPrivilegeRepository(db),
            SqlalchemyUserRepository(db),
        )
        for bootstrap in (privilege_service.create_default, privilege_service.create_root):
            try:
                bootstrap()
            except AlreadyExistsError as e:
                log.info("%s", e)
    finally:
        db.close()
