"""Repository for user accounts."""

from typing import List, Optional

from ..models.user import User
from ..exceptions import UserNotFoundError
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    model_class = User
    id_column = "user_id"
    not_found_error = UserNotFoundError

    def create(
        self,
        user_id: str,
        display_name: str,
        email: Optional[str] = None,
        role: str = "user",
        is_superadmin: bool = False,
    ) -> User:
        user = User(
            user_id=user_id,
            display_name=display_name,
            email=email,
            role=role,
            is_superadmin=is_superadmin,
        )
        return self.add(user)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def list_all(self, offset: int = 0, limit: int = 100) -> List[User]:
        return self.db.query(User).order_by(User.display_name).offset(offset).limit(limit).all()
