from .interfaces import IIdentityAuthority
from .identity_client import HttpIdentityAuthority

__all__ = ["IIdentityAuthority", "HttpIdentityAuthority"]
