from typing import List, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from privilege_service.database import models
from privilege_service.repositories.interfaces import IPrivilegeRepository
from privilege_service.repositories.sqlalchemy.session_guard import storage_errors
from privilege_service.services.exceptions import StorageError

# 일반 권한만 수정/삭제 대상이 되도록 모든 쓰기 쿼리에 붙이는 조건
_NOT_PROTECTED = (models.Privilege.is_default.is_(False), models.Privilege.is_root.is_(False))

class SqlalchemyPrivilegeRepository(IPrivilegeRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, privilege_model: models.Privilege) -> models.Privilege:
        with storage_errors(self.db, f"create privilege '{privilege_model.name}'"):
            self.db.add(privilege_model)
            self.db.commit()
            self.db.refresh(privilege_model)
        return privilege_model

    def create_if_absent(self, privilege_model: models.Privilege) -> bool:
        try:
            self.db.add(privilege_model)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            # kind UNIQUE 제약 위반인 경우에만 '이미 존재'로 판단
            if self._find_by_kind(privilege_model.kind) is not None:
                return False
            raise StorageError(f"Failed to create {privilege_model.kind} privilege: {e}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to create {privilege_model.kind} privilege: {e}") from e
        return True

    def update(self, privilege_model: models.Privilege) -> Optional[models.Privilege]:
        values = {flag: getattr(privilege_model, flag) for flag in models.CAPABILITY_FLAGS}
        values["name"] = privilege_model.name
        values["updated_at"] = privilege_model.updated_at

        with storage_errors(self.db, f"update privilege '{privilege_model.id}'"):
            updated = self.db.query(models.Privilege).filter(
                models.Privilege.id == privilege_model.id,
                *_NOT_PROTECTED
            ).update(values, synchronize_session=False)
            self.db.commit()

        if not updated:
            return None
        return self.find_by_id(privilege_model.id)

    def find_by_id(self, privilege_id: str) -> Optional[models.Privilege]:
        with storage_errors(self.db, f"find privilege '{privilege_id}'"):
            return self.db.query(models.Privilege).populate_existing().filter(models.Privilege.id == privilege_id).first()

    def find_default(self) -> Optional[models.Privilege]:
        return self._find_by_kind(models.KIND_DEFAULT)

    def find_root(self) -> Optional[models.Privilege]:
        return self._find_by_kind(models.KIND_ROOT)

    def list_all(self) -> List[models.Privilege]:
        with storage_errors(self.db, "list privileges"):
            return self.db.query(models.Privilege).populate_existing().order_by(
                models.Privilege.created_at.asc(),
                models.Privilege.id.asc()
            ).all()

    def delete(self, privilege: models.Privilege) -> bool:
        if not privilege:
            return False
        with storage_errors(self.db, f"delete privilege '{privilege.id}'"):
            deleted = self.db.query(models.Privilege).filter(
                models.Privilege.id == privilege.id,
                *_NOT_PROTECTED
            ).delete(synchronize_session=False)
            self.db.commit()
        return deleted > 0

    def _find_by_kind(self, kind: str) -> Optional[models.Privilege]:
        with storage_errors(self.db, f"find {kind} privilege"):
            return self.db.query(models.Privilege).populate_existing().filter(models.Privilege.kind == kind).first()
