from abc import ABC, abstractmethod
from typing import Any, Dict

class IIdentityAuthority(ABC):
    @abstractmethod
    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        토큰을 검증하고 토큰 소유자의 권한 플래그를 반환합니다.

        Returns:
            권한 플래그 딕셔너리. (예: {'manage_privileges': True, 'view_all_users': True})

        Raises:
            AuthorityUnavailableError: 인증 서비스 호출에 실패했거나 오류를 반환했을 때.
        """
        pass

    @abstractmethod
    def ping(self) -> bool:
        """인증 서비스가 살아 있는지 확인합니다."""
        pass
