from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ResidentPreferencesView(CamelModel):
    property_location: Optional[str] = None
    max_rent: Optional[float] = None
    description: Optional[str] = None
    religious_pref: Optional[str] = None
    roommate_food_pref: Optional[str] = None
    smokes: Optional[bool] = None
    roommate_smokes_ok: Optional[bool] = None
    roommate_age_pref: Optional[str] = None
    roommate_gender_pref: Optional[str] = None
    environment_pref: Optional[str] = None
    curfew_time: Optional[str] = None
    works: Optional[bool] = None
    roommate_night_ok: Optional[bool] = None
    profession: Optional[str] = None
    relationship_status: Optional[str] = None
    roommate_pets_ok: Optional[bool] = None
    extra_requirements: Optional[str] = None


class RoommatePreferencesView(CamelModel):
    current_location: Optional[str] = None
    cultural_pref: Optional[str] = None
    food_type: Optional[str] = None
    smokes: Optional[bool] = None
    drinks: Optional[bool] = None
    dietary_restrictions: Optional[str] = None
    roommate_smokes_ok: Optional[bool] = None
    roommate_drinks_ok: Optional[bool] = None
    roommate_age_pref: Optional[str] = None
    roommate_gender_pref: Optional[str] = None
    environment_pref: Optional[str] = None
    curfew_time: Optional[str] = None
    owns_pets: Optional[bool] = None
    pet_details: Optional[str] = None
    profession: Optional[str] = None
    schedule: Optional[str] = None
    roommate_night_ok: Optional[bool] = None
    relationship_status: Optional[str] = None
    profession_pref: Optional[str] = None
    cleanliness: Optional[str] = None
    cooking_pref: Optional[str] = None
    extra_expectations: Optional[str] = None


class MatchCandidate(CamelModel):
    match_id: int
    compatibility_score: int
    status: str
    matched_on: Optional[datetime] = None
    id: int
    user_id: int
    name: Optional[str] = None
    email: Optional[str] = None


class ResidentCandidate(MatchCandidate):
    """A resident listing, as shown to a roommate."""

    preferences: ResidentPreferencesView
    type: Literal["resident"] = "resident"


class RoommateCandidate(MatchCandidate):
    """A roommate seeker, as shown to a resident."""

    preferences: RoommatePreferencesView
    type: Literal["roommate"] = "roommate"


class MatchCounterpart(CamelModel):
    user_id: int
    name: Optional[str] = None
    email: Optional[str] = None
    type: Literal["resident", "roommate"]
    id: int


class MutualMatch(CamelModel):
    match_id: int
    matched_on: Optional[datetime] = None
    status: str
    other: MatchCounterpart


class MatchActionRequest(BaseModel):
    # Loosely typed; the action handler reports missing and malformed values itself
    user_id: Any = Field(None, alias="userId")
    match_id: Any = Field(None, alias="matchId")
    action: Any = None

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {"userId": 5, "matchId": 42, "action": "accept"}
        }
