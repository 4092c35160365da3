"""Repository for user accounts."""

from sqlalchemy import select

from uniadmin.db.base import utcnow
from uniadmin.db.models.user import UserRow
from uniadmin.repositories.base import BaseRepository


class UserRepository(BaseRepository[UserRow]):
    model_class = UserRow

    async def get(self, user_id: str) -> UserRow | None:
        return await self.get_row(user_id)

    async def get_by_email(self, email: str) -> UserRow | None:
        stmt = select(UserRow).where(UserRow.email == email)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def email_taken(self, email: str) -> bool:
        return await self.exists(UserRow.email == email)

    async def update_last_login(self, user: UserRow) -> None:
        await self.assign(user, last_login=utcnow())
