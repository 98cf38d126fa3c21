from .privilege import IPrivilegeRepository
from .user import IUserRepository

__all__ = ["IPrivilegeRepository", "IUserRepository"]
