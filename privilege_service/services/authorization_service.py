from typing import Any, Dict, Mapping, Optional

from privilege_service.clients.interfaces import IIdentityAuthority
from privilege_service.services.exceptions import (
    AuthorityUnavailableError,
    ForbiddenError,
    MissingCredentialError,
)
from privilege_service.utils import get_logger

log = get_logger(__name__)

TOKEN_KEY = "token"
REQUIRED_CAPABILITY = "manage_privileges"


class AuthorizationService:
    """요청 메타데이터의 토큰을 신원 인증 서비스로 검증하여 권한 관리 가능 여부를 판단합니다."""

    def __init__(self, identity_authority: IIdentityAuthority):
        """
        AuthorizationService를 초기화합니다.

        Args:
            identity_authority: 토큰을 검증할 신원 인증 서비스. 연결 수명은 호출자가 관리합니다.
        """
        self.identity_authority = identity_authority

    def authorize(self, metadata: Optional[Mapping[str, str]]) -> Dict[str, Any]:
        """
        요청이 권한을 관리할 수 있는지 검증하고, 성공 시 토큰의 권한 플래그를 반환합니다.

        Args:
            metadata: 요청 헤더 딕셔너리. 키는 소문자로 정규화되어 있어야 합니다.

        Raises:
            MissingCredentialError: 메타데이터나 토큰이 없거나, 토큰이 공백뿐일 때.
            AuthorityUnavailableError: 신원 인증 서비스 호출이 실패했을 때.
            ForbiddenError: 토큰 소유자에게 manage_privileges 권한이 없을 때.
        """
        if metadata is None:
            raise MissingCredentialError("Could not validate token: request metadata is missing.")

        token = metadata.get(TOKEN_KEY)
        if token is None:
            raise MissingCredentialError("Missing token header in context.")
        token = token.strip()
        if not token:
            raise MissingCredentialError("Token is empty.")

        try:
            claims = self.identity_authority.validate_token(token)
        except AuthorityUnavailableError:
            raise
        except Exception as e:
            raise AuthorityUnavailableError(str(e)) from e

        if claims.get(REQUIRED_CAPABILITY) is not True:
            log.warning("Rejected token without %s capability", REQUIRED_CAPABILITY)
            raise ForbiddenError("User not allowed to manage privileges.")

        return claims
