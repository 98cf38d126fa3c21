from .privilege import Privilege, CAPABILITY_FLAGS, KIND_DEFAULT, KIND_ROOT
from .user import User

__all__ = ["Privilege", "User", "CAPABILITY_FLAGS", "KIND_DEFAULT", "KIND_ROOT"]
