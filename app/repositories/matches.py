from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.models.match import Match, MatchStatus
from app.models.resident import Resident
from app.models.roommate import Roommate
from app.models.user import User

# Preference columns shown to the other side of a match
RESIDENT_VIEW_COLUMNS = (
    "property_location", "rent", "description", "religious_pref", "roommate_food_pref",
    "smokes", "roommate_smokes_ok", "roommate_age_pref", "roommate_gender_pref",
    "environment_pref", "curfew_time", "works", "roommate_night_ok", "profession",
    "relationship_status", "roommate_pets_ok", "extra_requirements",
)
ROOMMATE_VIEW_COLUMNS = (
    "current_location", "cultural_pref", "food_type", "smokes", "drinks",
    "dietary_restrictions", "roommate_smokes_ok", "roommate_drinks_ok", "roommate_age_pref",
    "roommate_gender_pref", "environment_pref", "curfew_time", "owns_pets", "pet_details",
    "profession", "work_study_schedule", "roommate_night_ok", "relationship_status",
    "profession_pref", "cleanliness", "cooking_pref", "extra_expectations",
)


def build_match_insert(rows: List[dict]):
    """Bulk insert of scored pairs; pairs that already exist are skipped."""
    return (
        insert(Match)
        .values(rows)
        .on_conflict_do_nothing(index_elements=[Match.resident_id, Match.roommate_id])
        .returning(Match.match_id)
    )


def _pending_with_counterpart(profile_model, profile_id_col, view_columns, side_col, side_id):
    table = profile_model.__table__
    return (
        select(
            Match.match_id,
            Match.compatibility_score,
            Match.status,
            Match.matched_on,
            profile_id_col.label("profile_id"),
            profile_model.user_id.label("profile_user_id"),
            User.name,
            User.email,
            *[table.c[name] for name in view_columns],
        )
        .join(profile_model, profile_id_col == getattr(Match, profile_id_col.key))
        .join(User, profile_model.user_id == User.user_id)
        .where(side_col == side_id, Match.status == MatchStatus.pending.value)
        .order_by(Match.compatibility_score.desc(), Match.match_id.asc())
    )


class MatchRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _rows(self, stmt) -> List[dict]:
        result = await self.session.execute(stmt)
        return [dict(r) for r in result.mappings().all()]

    async def _first(self, stmt) -> Optional[dict]:
        row = (await self.session.execute(stmt)).mappings().first()
        return dict(row) if row else None

    async def get_resident_id_for_user(self, user_id: int) -> Optional[int]:
        result = await self.session.execute(select(Resident.resident_id).where(Resident.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_roommate_id_for_user(self, user_id: int) -> Optional[int]:
        result = await self.session.execute(select(Roommate.roommate_id).where(Roommate.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_resident(self, resident_id: int) -> Optional[dict]:
        return await self._first(select(*Resident.__table__.columns).where(Resident.resident_id == resident_id))

    async def get_roommate(self, roommate_id: int) -> Optional[dict]:
        return await self._first(select(*Roommate.__table__.columns).where(Roommate.roommate_id == roommate_id))

    async def list_roommates_without_match(self, resident_id: int) -> List[dict]:
        owner = select(Resident.user_id).where(Resident.resident_id == resident_id).scalar_subquery()
        existing = select(Match.match_id).where(
            Match.resident_id == resident_id, Match.roommate_id == Roommate.roommate_id
        )
        stmt = (
            select(*Roommate.__table__.columns)
            .where(Roommate.user_id != owner, ~existing.exists())
            .order_by(Roommate.roommate_id)
        )
        return await self._rows(stmt)

    async def list_residents_without_match(self, roommate_id: int) -> List[dict]:
        owner = select(Roommate.user_id).where(Roommate.roommate_id == roommate_id).scalar_subquery()
        existing = select(Match.match_id).where(
            Match.roommate_id == roommate_id, Match.resident_id == Resident.resident_id
        )
        stmt = (
            select(*Resident.__table__.columns)
            .where(Resident.user_id != owner, ~existing.exists())
            .order_by(Resident.resident_id)
        )
        return await self._rows(stmt)

    async def insert_matches(self, rows: List[dict]) -> int:
        if not rows:
            return 0
        try:
            result = await self.session.execute(build_match_insert(rows))
            inserted = len(result.all())
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return inserted

    async def list_pending_for_resident(self, resident_id: int) -> List[dict]:
        """Pending matches of a resident, each joined with the roommate side."""
        stmt = _pending_with_counterpart(
            Roommate, Roommate.roommate_id, ROOMMATE_VIEW_COLUMNS, Match.resident_id, resident_id
        )
        return await self._rows(stmt)

    async def list_pending_for_roommate(self, roommate_id: int) -> List[dict]:
        """Pending matches of a roommate, each joined with the resident side."""
        stmt = _pending_with_counterpart(
            Resident, Resident.resident_id, RESIDENT_VIEW_COLUMNS, Match.roommate_id, roommate_id
        )
        return await self._rows(stmt)

    async def get_participants(self, match_id: int) -> Optional[dict]:
        stmt = (
            select(
                Match.match_id,
                Match.status,
                Match.resident_id,
                Match.roommate_id,
                Resident.user_id.label("resident_user_id"),
                Roommate.user_id.label("roommate_user_id"),
            )
            .outerjoin(Resident, Match.resident_id == Resident.resident_id)
            .outerjoin(Roommate, Match.roommate_id == Roommate.roommate_id)
            .where(Match.match_id == match_id)
        )
        return await self._first(stmt)

    async def update_status(self, match_id: int, status: str, matched_on: Optional[datetime] = None) -> None:
        values = {"status": status}
        if matched_on is not None:
            values["matched_on"] = matched_on
        await self.session.execute(update(Match).where(Match.match_id == match_id).values(**values))
        await self.session.commit()

    async def list_accepted_for_user(self, user_id: int) -> List[dict]:
        resident_user = aliased(User)
        roommate_user = aliased(User)
        stmt = (
            select(
                Match.match_id,
                Match.matched_on,
                Match.status,
                Resident.resident_id,
                Resident.user_id.label("resident_user_id"),
                resident_user.name.label("resident_name"),
                resident_user.email.label("resident_email"),
                Roommate.roommate_id,
                Roommate.user_id.label("roommate_user_id"),
                roommate_user.name.label("roommate_name"),
                roommate_user.email.label("roommate_email"),
            )
            .join(Resident, Match.resident_id == Resident.resident_id)
            .join(Roommate, Match.roommate_id == Roommate.roommate_id)
            .join(resident_user, Resident.user_id == resident_user.user_id)
            .join(roommate_user, Roommate.user_id == roommate_user.user_id)
            .where(
                or_(Resident.user_id == user_id, Roommate.user_id == user_id),
                Match.status == MatchStatus.accepted.value,
            )
            .order_by(Match.matched_on.desc().nulls_last(), Match.match_id.asc())
        )
        return await self._rows(stmt)

    async def list_all(self) -> List[dict]:
        resident_user = aliased(User)
        roommate_user = aliased(User)
        stmt = (
            select(
                Match.match_id,
                Match.compatibility_score,
                Match.status,
                Match.matched_on,
                Resident.resident_id,
                Roommate.roommate_id,
                resident_user.name.label("resident_name"),
                roommate_user.name.label("roommate_name"),
            )
            .join(Resident, Match.resident_id == Resident.resident_id)
            .join(Roommate, Match.roommate_id == Roommate.roommate_id)
            .join(resident_user, Resident.user_id == resident_user.user_id)
            .join(roommate_user, Roommate.user_id == roommate_user.user_id)
            .order_by(Match.compatibility_score.desc(), Match.match_id.asc())
        )
        return await self._rows(stmt)
