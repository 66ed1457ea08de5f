from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.resident import Resident
from app.models.roommate import Roommate


def _columns(model) -> list:
    return list(model.__table__.columns)


def build_profile_upsert(model, user_id: int, data: dict):
    """Insert a profile or overwrite the one the user already owns."""
    stmt = insert(model).values(user_id=user_id, **data)
    return stmt.on_conflict_do_update(
        index_elements=[model.user_id],
        set_={key: stmt.excluded[key] for key in data},
    )


class ProfileRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_by_user(self, model, user_id: int) -> Optional[dict]:
        stmt = select(*_columns(model)).where(model.user_id == user_id)
        row = (await self.session.execute(stmt)).mappings().first()
        return dict(row) if row else None

    async def _upsert(self, model, user_id: int, data: dict) -> None:
        await self.session.execute(build_profile_upsert(model, user_id, data))
        await self.session.commit()

    async def get_resident_by_user(self, user_id: int) -> Optional[dict]:
        return await self._get_by_user(Resident, user_id)

    async def get_roommate_by_user(self, user_id: int) -> Optional[dict]:
        return await self._get_by_user(Roommate, user_id)

    async def upsert_resident(self, user_id: int, data: dict) -> None:
        await self._upsert(Resident, user_id, data)

    async def upsert_roommate(self, user_id: int, data: dict) -> None:
        await self._upsert(Roommate, user_id, data)
