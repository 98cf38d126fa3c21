from datetime import datetime
from sqlalchemy.orm import Session
from privilege_service.database import models
from privilege_service.repositories.interfaces import IUserRepository
from privilege_service.repositories.sqlalchemy.session_guard import storage_errors

class SqlalchemyUserRepository(IUserRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def reassign_privilege(self, old_privilege_id: str, new_privilege_id: str, updated_at: datetime) -> int:
        with storage_errors(self.db, f"reassign users from privilege '{old_privilege_id}'"):
            count = self.db.query(models.User).filter(
                models.User.privilege_id == old_privilege_id
            ).update(
                {"privilege_id": new_privilege_id, "updated_at": updated_at},
                synchronize_session=False
            )
            self.db.commit()
        return count
