from abc import ABC, abstractmethod
from typing import List, Optional
from privilege_service.database import models

class IPrivilegeRepository(ABC):
    @abstractmethod
    def create(self, privilege_model: models.Privilege) -> models.Privilege:
        """새로운 권한을 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def create_if_absent(self, privilege_model: models.Privilege) -> bool:
        """
        kind가 같은 권한이 없을 때만 권한을 생성합니다.

        존재 확인과 삽입을 나누지 않고, kind 컬럼의 UNIQUE 제약에 의존하는
        단일 INSERT로 처리합니다.

        Returns:
            새로 생성했으면 True, 같은 kind의 권한이 이미 있어 아무것도 쓰지 않았으면 False.
        """
        pass

    @abstractmethod
    def update(self, privilege_model: models.Privilege) -> Optional[models.Privilege]:
        """
        id가 같은 저장된 권한의 이름, 권한 플래그, updated_at을 갱신합니다.

        Returns:
            갱신된 권한 객체. 해당 id의 권한이 없으면 None.
        """
        pass

    @abstractmethod
    def find_by_id(self, privilege_id: str) -> Optional[models.Privilege]:
        """고유 ID로 특정 권한을 조회합니다."""
        pass

    @abstractmethod
    def find_default(self) -> Optional[models.Privilege]:
        """기본(default) 권한을 조회합니다."""
        pass

    @abstractmethod
    def find_root(self) -> Optional[models.Privilege]:
        """루트(root) 권한을 조회합니다."""
        pass

    @abstractmethod
    def list_all(self) -> List[models.Privilege]:
        """모든 권한의 목록을 조회합니다."""
        pass

    @abstractmethod
    def delete(self, privilege: models.Privilege) -> bool:
        """특정 권한을 데이터베이스에서 삭제합니다."""
        pass
