"""
Match generation, listing and the accept/reject workflow.

Matches are materialised lazily: a pending-match listing that comes back
empty triggers generation against every counterpart profile that has no
match with the requesting profile yet, and the listing is read again.
"""
import enum
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from structlog import get_logger

from app.errors import AuthorizationError, NotFoundError, ValidationError
from app.models.match import MatchStatus
from app.repositories.matches import RESIDENT_VIEW_COLUMNS, ROOMMATE_VIEW_COLUMNS
from app.schemas.match import (
    MatchCounterpart,
    MutualMatch,
    ResidentCandidate,
    ResidentPreferencesView,
    RoommateCandidate,
    RoommatePreferencesView,
)
from app.services.compatibility import compatibility_score
from app.services.identity import IdentifierResolver
from app.services.realtime import user_room
from app.utils.params import is_missing, parse_int

logger = get_logger()

# Column name -> view field name where they differ
_VIEW_RENAMES = {"rent": "max_rent", "work_study_schedule": "schedule"}


class MatchAction(str, enum.Enum):
    accept = "accept"
    reject = "reject"


# Status each action moves a pending match to
ACTION_TARGETS = {
    MatchAction.accept: MatchStatus.accepted,
    MatchAction.reject: MatchStatus.rejected,
}


def _view(row: dict, columns) -> dict:
    return {_VIEW_RENAMES.get(name, name): row.get(name) for name in columns}


def _candidate_fields(row: dict) -> dict:
    return {
        "match_id": row["match_id"],
        "compatibility_score": row["compatibility_score"],
        "status": row["status"],
        "matched_on": row.get("matched_on"),
        "id": row["profile_id"],
        "user_id": row["profile_user_id"],
        "name": row.get("name"),
        "email": row.get("email"),
    }


def _to_resident_candidate(row: dict) -> ResidentCandidate:
    return ResidentCandidate(
        **_candidate_fields(row),
        preferences=ResidentPreferencesView(**_view(row, RESIDENT_VIEW_COLUMNS)),
    )


def _to_roommate_candidate(row: dict) -> RoommateCandidate:
    return RoommateCandidate(
        **_candidate_fields(row),
        preferences=RoommatePreferencesView(**_view(row, ROOMMATE_VIEW_COLUMNS)),
    )


def _to_mutual(row: dict, user_id: int) -> MutualMatch:
    if row["resident_user_id"] == user_id:
        other = MatchCounterpart(
            user_id=row["roommate_user_id"],
            name=row.get("roommate_name"),
            email=row.get("roommate_email"),
            type="roommate",
            id=row["roommate_id"],
        )
    else:
        other = MatchCounterpart(
            user_id=row["resident_user_id"],
            name=row.get("resident_name"),
            email=row.get("resident_email"),
            type="resident",
            id=row["resident_id"],
        )
    return MutualMatch(match_id=row["match_id"], matched_on=row.get("matched_on"), status=row["status"], other=other)


class MatchService:
    def __init__(self, matches, resolver: IdentifierResolver, notifier=None):
        self.matches = matches
        self.resolver = resolver
        self.notifier = notifier

    async def _resolve_user(self, identifier: Any) -> int:
        user_id = await self.resolver.resolve(identifier)
        if user_id is None:
            raise NotFoundError("User not found")
        return user_id

    # Generation

    async def generate_for_resident(self, resident_id: int) -> int:
        resident = await self.matches.get_resident(resident_id)
        if resident is None:
            return 0
        candidates = await self.matches.list_roommates_without_match(resident_id)
        rows = [
            {
                "resident_id": resident_id,
                "roommate_id": roommate["roommate_id"],
                "compatibility_score": compatibility_score(resident, roommate),
                "status": MatchStatus.pending.value,
            }
            for roommate in candidates
        ]
        inserted = await self.matches.insert_matches(rows)
        logger.info("Matches generated", resident_id=resident_id, candidates=len(rows), inserted=inserted)
        return inserted

    async def generate_for_roommate(self, roommate_id: int) -> int:
        roommate = await self.matches.get_roommate(roommate_id)
        if roommate is None:
            return 0
        candidates = await self.matches.list_residents_without_match(roommate_id)
        rows = [
            {
                "resident_id": resident["resident_id"],
                "roommate_id": roommate_id,
                "compatibility_score": compatibility_score(resident, roommate),
                "status": MatchStatus.pending.value,
            }
            for resident in candidates
        ]
        inserted = await self.matches.insert_matches(rows)
        logger.info("Matches generated", roommate_id=roommate_id, candidates=len(rows), inserted=inserted)
        return inserted

    async def _pending_or_generate(self, list_pending, generate, anchor_id: int) -> List[dict]:
        rows = await list_pending(anchor_id)
        if rows:
            return rows
        try:
            await generate(anchor_id)
        except SQLAlchemyError as e:
            # Listing still answers with whatever exists
            logger.error("Match generation failed", anchor_id=anchor_id, error=str(e))
        return await list_pending(anchor_id)

    # Queries

    async def roommate_matches(self, identifier: Any) -> Optional[List[ResidentCandidate]]:
        """Pending residents for a roommate; None when the user has no roommate profile."""
        user_id = await self._resolve_user(identifier)
        roommate_id = await self.matches.get_roommate_id_for_user(user_id)
        if roommate_id is None:
            return None
        rows = await self._pending_or_generate(
            self.matches.list_pending_for_roommate, self.generate_for_roommate, roommate_id
        )
        return [_to_resident_candidate(row) for row in rows]

    async def resident_matches(self, identifier: Any) -> Optional[List[RoommateCandidate]]:
        """Pending roommates for a resident; None when the user has no resident profile."""
        user_id = await self._resolve_user(identifier)
        resident_id = await self.matches.get_resident_id_for_user(user_id)
        if resident_id is None:
            return None
        rows = await self._pending_or_generate(
            self.matches.list_pending_for_resident, self.generate_for_resident, resident_id
        )
        return [_to_roommate_candidate(row) for row in rows]

    async def mutual_matches(self, identifier: Any) -> List[MutualMatch]:
        user_id = await self._resolve_user(identifier)
        rows = await self.matches.list_accepted_for_user(user_id)
        return [_to_mutual(row, user_id) for row in rows]

    async def all_matches(self) -> List[dict]:
        return await self.matches.list_all()

    # Accept / reject

    async def apply_action(self, user_id: Any, match_id: Any, action: Any) -> dict:
        if is_missing(user_id) or is_missing(match_id) or is_missing(action):
            raise ValidationError("Missing userId, matchId, or action")

        actor = parse_int(user_id)
        numeric_match_id = parse_int(match_id)
        if actor is None or numeric_match_id is None:
            raise ValidationError("userId and matchId must be numeric")

        match = await self.matches.get_participants(numeric_match_id)
        if match is None:
            raise NotFoundError("Match not found")

        participants = [p for p in (match.get("resident_user_id"), match.get("roommate_user_id")) if p is not None]
        if actor not in participants:
            raise AuthorizationError("User not a participant in this match")

        try:
            requested = MatchAction(action)
        except ValueError:
            raise ValidationError("Invalid action. Must be 'accept' or 'reject'")

        current = MatchStatus(match["status"])
        target = ACTION_TARGETS[requested]
        if current == MatchStatus.pending:
            matched_on = datetime.now(timezone.utc) if target == MatchStatus.accepted else None
            await self.matches.update_status(numeric_match_id, target.value, matched_on=matched_on)
            logger.info("Match status changed", match_id=numeric_match_id, user_id=actor, status=target.value)
            if target == MatchStatus.accepted:
                await self._announce_acceptance(numeric_match_id, participants, matched_on)
        elif current != target:
            raise ValidationError(f"Match is already {current.value}")

        if target == MatchStatus.accepted:
            return {"success": True, "message": "Match accepted", "isMatch": True, "matchId": numeric_match_id}
        return {"success": True, "message": "Match rejected", "isMatch": False}

    async def _announce_acceptance(self, match_id: int, participants: List[int], matched_on: datetime) -> None:
        if self.notifier is None:
            return
        for participant in participants:
            try:
                await self.notifier.publish(
                    user_room(participant),
                    "match_accepted",
                    {"matchId": match_id, "matchedOn": matched_on},
                )
            except Exception as e:
                logger.warning("Match broadcast failed", match_id=match_id, user_id=participant, error=str(e))
