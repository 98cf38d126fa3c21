from abc import ABC, abstractmethod
from datetime import datetime

class IUserRepository(ABC):
    @abstractmethod
    def reassign_privilege(self, old_privilege_id: str, new_privilege_id: str, updated_at: datetime) -> int:
        """
        old_privilege_id를 참조하는 모든 사용자를 new_privilege_id로 옮깁니다.

        Args:
            old_privilege_id: 삭제될 권한의 ID.
            new_privilege_id: 사용자들이 새로 참조할 권한의 ID (보통 기본 권한).
            updated_at: 변경된 사용자들의 updated_at에 기록할 시각.

        Returns:
            재할당된 사용자 수.
        """
        pass
