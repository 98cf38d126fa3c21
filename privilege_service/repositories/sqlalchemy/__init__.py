from .sqlalchemy_privilege_repository import SqlalchemyPrivilegeRepository
from .sqlalchemy_user_repository import SqlalchemyUserRepository

__all__ = ["SqlalchemyPrivilegeRepository", "SqlalchemyUserRepository"]
