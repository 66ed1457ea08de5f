from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User


def build_placeholder_insert(name: str, password: str, national_id: str,
                             email: Optional[str] = None, external_uid: Optional[str] = None):
    """INSERT ... ON CONFLICT DO NOTHING RETURNING user_id for a placeholder user."""
    values = {"name": name, "password": password, "aadhar_no": national_id}
    if email is not None:
        values["email"] = email
    if external_uid is not None:
        values["firebase_uid"] = external_uid
    return insert(User).values(**values).on_conflict_do_nothing().returning(User.user_id)


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_id(self, user_id: int) -> Optional[int]:
        result = await self.session.execute(select(User.user_id).where(User.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_id_by_email(self, email: str) -> Optional[int]:
        stmt = select(User.user_id).where(func.lower(User.email) == email.lower()).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_id_by_external_uid(self, external_uid: str) -> Optional[int]:
        stmt = select(User.user_id).where(User.firebase_uid == external_uid).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def insert_placeholder(self, name: str, password: str, national_id: str,
                                 email: Optional[str] = None, external_uid: Optional[str] = None) -> Optional[int]:
        """Returns the new user id, or None when an existing row won the conflict.

        Raises IntegrityError for violations ON CONFLICT cannot absorb.
        """
        stmt = build_placeholder_insert(name, password, national_id, email=email, external_uid=external_uid)
        try:
            result = await self.session.execute(stmt)
            user_id = result.scalar_one_or_none()
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise
        return user_id

    async def get_info(self, user_id: int) -> Optional[dict]:
        stmt = select(User.user_id, User.name, User.email, User.user_type).where(User.user_id == user_id)
        row = (await self.session.execute(stmt)).mappings().first()
        return dict(row) if row else None

    async def get_names(self, user_ids: List[int]) -> dict:
        stmt = select(User.user_id, User.name).where(User.user_id.in_(user_ids))
        rows = (await self.session.execute(stmt)).all()
        return {user_id: name for user_id, name in rows}

    async def list_recent(self, limit: int = 200) -> List[dict]:
        stmt = (
            select(User.user_id, User.name, User.email, User.aadhar_no)
            .order_by(User.user_id.desc())
            .limit(limit)
        )
        rows = (await self.session.execute(stmt)).mappings().all()
        return [dict(r) for r in rows]

    async def create(self, values: dict) -> int:
        """Plain insert of a user row; raises IntegrityError on duplicate keys."""
        stmt = insert(User).values(**values).returning(User.user_id)
        try:
            result = await self.session.execute(stmt)
            user_id = result.scalar_one()
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise
        return user_id
