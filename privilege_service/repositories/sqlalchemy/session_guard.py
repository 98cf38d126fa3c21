from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from privilege_service.services.exceptions import StorageError


@contextmanager
def storage_errors(db: Session, action: str):
    """SQLAlchemy 오류가 나면 세션을 롤백하고 StorageError로 감싸서 다시 던집니다."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"Failed to {action}: {e}") from e
