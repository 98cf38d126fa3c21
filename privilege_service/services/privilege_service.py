import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List

from privilege_service.database import models
from privilege_service.repositories.interfaces import IPrivilegeRepository, IUserRepository
from privilege_service.services.exceptions import (
    AlreadyExistsError,
    NotFoundError,
    ProtectedRecordError,
    ValidationError,
)
from privilege_service.utils import get_logger

log = get_logger(__name__)

# view_all_users 없이는 가질 수 없는 권한과 위반 시 메시지
VIEW_DEPENDENT_CAPABILITIES = (
    ("create_user", "Create access not allowed without view access"),
    ("delete_user", "Delete access not allowed without view access"),
    ("manage_privileges", "Manage privileges access not allowed without view access"),
    ("block_user", "Block access not allowed without view access"),
    ("send_reset_password_email", "Send reset email access not allowed without view access"),
)


class PrivilegeOperation(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PrivilegeService:
    """권한(Privilege) 생성, 수정, 조회, 삭제와 default/root 권한 부트스트랩을 제공합니다."""

    def __init__(self, privilege_repo: IPrivilegeRepository, user_repo: IUserRepository):
        """
        PrivilegeService를 초기화합니다.

        Args:
            privilege_repo: 권한 데이터에 접근하기 위한 리포지토리.
            user_repo: 권한 삭제 시 사용자 재할당에 사용하는 리포지토리.
        """
        self.privilege_repo = privilege_repo
        self.user_repo = user_repo

    def create(self, privilege: models.Privilege) -> models.Privilege:
        """
        새로운 일반 권한을 생성합니다.

        id와 생성/수정 시각은 서버가 부여하며, 호출자가 보낸 is_default/is_root 값은
        무시됩니다. 전달받은 객체에 부여된 값이 그대로 기록됩니다.

        Returns:
            저장된 권한 객체.

        Raises:
            ValidationError: 권한 의존 규칙 또는 필수 필드 규칙을 위반했을 때.
        """
        privilege.id = str(uuid.uuid4())
        self._prepare(privilege, PrivilegeOperation.CREATE)
        self._validate(privilege, PrivilegeOperation.CREATE)

        created = self.privilege_repo.create(privilege)
        log.info("Created privilege '%s' (%s)", created.name, created.id)
        return created

    def create_default(self) -> models.Privilege:
        """
        모든 권한 플래그가 꺼진 기본(default) 권한을 생성합니다.

        Raises:
            AlreadyExistsError: 기본 권한이 이미 존재할 때.
        """
        privilege = self._singleton(models.KIND_DEFAULT, "Default", granted=False)
        if not self.privilege_repo.create_if_absent(privilege):
            raise AlreadyExistsError("Default privilege already exists")
        log.info("Created default privilege (%s)", privilege.id)
        return privilege

    def create_root(self) -> models.Privilege:
        """
        모든 권한 플래그가 켜진 루트(root) 권한을 생성합니다.

        Raises:
            AlreadyExistsError: 루트 권한이 이미 존재할 때.
        """
        privilege = self._singleton(models.KIND_ROOT, "Root", granted=True)
        if not self.privilege_repo.create_if_absent(privilege):
            raise AlreadyExistsError("Root privilege already exists")
        log.info("Created root privilege (%s)", privilege.id)
        return privilege

    def update(self, privilege: models.Privilege) -> models.Privilege:
        """
        기존 권한의 이름과 권한 플래그를 수정합니다. default/root 권한으로 승격될 수 없습니다.

        Raises:
            NotFoundError: 해당 ID의 권한을 찾을 수 없을 때.
            ProtectedRecordError: 대상이 default 또는 root 권한일 때.
            ValidationError: 권한 의존 규칙 또는 필수 필드 규칙을 위반했을 때.
        """
        target = self.privilege_repo.find_by_id(privilege.id) if privilege.id else None
        if not target:
            raise NotFoundError(f"Privilege with id '{privilege.id}' not found.")
        self._check_not_protected(target, PrivilegeOperation.UPDATE)

        self._prepare(privilege, PrivilegeOperation.UPDATE)
        self._validate(privilege, PrivilegeOperation.UPDATE)

        updated = self.privilege_repo.update(privilege)
        if not updated:
            # 조회와 수정 사이에 삭제된 경우
            raise NotFoundError(f"Privilege with id '{privilege.id}' not found.")
        log.info("Updated privilege '%s' (%s)", updated.name, updated.id)
        return updated

    def get(self, privilege_id: str) -> models.Privilege:
        """
        ID로 특정 권한을 조회합니다.

        Raises:
            NotFoundError: 해당 ID의 권한을 찾을 수 없을 때.
        """
        privilege = self.privilege_repo.find_by_id(privilege_id) if privilege_id else None
        if not privilege:
            raise NotFoundError(f"Privilege with id '{privilege_id}' not found.")
        return privilege

    def get_default(self) -> models.Privilege:
        privilege = self.privilege_repo.find_default()
        if not privilege:
            raise NotFoundError("Default privilege not found.")
        return privilege

    def get_root(self) -> models.Privilege:
        privilege = self.privilege_repo.find_root()
        if not privilege:
            raise NotFoundError("Root privilege not found.")
        return privilege

    def get_all(self) -> List[models.Privilege]:
        """모든 권한의 목록을 조회합니다. 권한이 없으면 빈 리스트를 반환합니다."""
        return self.privilege_repo.list_all()

    def delete(self, privilege_id: str) -> int:
        """
        일반 권한을 삭제합니다.

        삭제 전에 이 권한을 참조하는 모든 사용자를 기본 권한으로 옮깁니다.
        재할당과 삭제는 별도의 커밋이므로, 삭제 단계에서 실패하면 사용자는 이미
        기본 권한으로 옮겨진 상태로 남고 권한 레코드만 남습니다. (재시도로 복구 가능)

        Returns:
            기본 권한으로 재할당된 사용자 수.

        Raises:
            NotFoundError: 해당 권한 또는 기본 권한을 찾을 수 없을 때.
            ProtectedRecordError: 대상이 default 또는 root 권한일 때.
        """
        target = self.get(privilege_id)
        self._validate(target, PrivilegeOperation.DELETE)

        default_privilege = self.get_default()
        reassigned = self.user_repo.reassign_privilege(target.id, default_privilege.id, _now())
        log.info("Reassigned %d user(s) from privilege %s to default %s", reassigned, target.id, default_privilege.id)

        if not self.privilege_repo.delete(target):
            raise NotFoundError(f"Privilege with id '{privilege_id}' not found.")
        log.info("Deleted privilege '%s' (%s)", target.name, target.id)
        return reassigned

    def _singleton(self, kind: str, name: str, granted: bool) -> models.Privilege:
        now = _now()
        privilege = models.Privilege(
            id=str(uuid.uuid4()),
            name=name,
            is_default=kind == models.KIND_DEFAULT,
            is_root=kind == models.KIND_ROOT,
            kind=kind,
            created_at=now,
            updated_at=now,
        )
        for flag in models.CAPABILITY_FLAGS:
            setattr(privilege, flag, granted)
        return privilege

    def _prepare(self, privilege: models.Privilege, operation: PrivilegeOperation):
        if operation is PrivilegeOperation.DELETE:
            return

        now = _now()
        if operation is PrivilegeOperation.CREATE:
            privilege.created_at = now
        privilege.updated_at = now

        # 일반 권한 경로로는 절대 default/root 권한이 될 수 없음
        privilege.is_default = False
        privilege.is_root = False
        privilege.kind = None

        for flag in models.CAPABILITY_FLAGS:
            setattr(privilege, flag, bool(getattr(privilege, flag)))

    def _validate(self, privilege: models.Privilege, operation: PrivilegeOperation):
        if operation is PrivilegeOperation.DELETE:
            self._check_not_protected(privilege, operation)
        elif operation in (PrivilegeOperation.CREATE, PrivilegeOperation.UPDATE):
            if not privilege.view_all_users:
                for flag, message in VIEW_DEPENDENT_CAPABILITIES:
                    if getattr(privilege, flag):
                        raise ValidationError(message)
            if not (privilege.name or "").strip():
                raise ValidationError("Name is required")
            if not privilege.id:
                raise ValidationError("Id is required")
        else:
            raise ValueError(f"Unknown privilege operation: {operation!r}")

    def _check_not_protected(self, privilege: models.Privilege, operation: PrivilegeOperation):
        if privilege.is_protected:
            kind = "root" if privilege.is_root else "default"
            log.warning("Rejected %s of %s privilege %s", operation.value, kind, privilege.id)
            raise ProtectedRecordError(f"Cannot {operation.value} {kind} privilege")
