from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from structlog import get_logger

from app.errors import NotFoundError, ValidationError
from app.services.identity import IdentifierResolver

logger = get_logger()

ENVIRONMENTS = ("quiet", "social", "party-friendly", "no preference")
RELATIONSHIPS = ("single", "married", "relationship")
CLEANLINESS = ("neat", "moderate", "messy")
COOKING = ("home", "outside", "no preference")
RESIDENT_FOOD = ("vegetarian", "non-vegetarian", "vegan", "flexible")
ROOMMATE_FOOD = ("vegetarian", "non-vegetarian", "vegan", "other")
SCHEDULES = ("day shift", "night shift", "flexible")
BACKGROUNDS = ("student", "professional", "flexible")


def normalize_choice(value: Any, allowed: Iterable[str]) -> Optional[str]:
    """Case-insensitive match against the allowed values; anything else is None."""
    if value is None:
        return None
    text = str(value).strip().lower()
    for option in allowed:
        if text == option.lower():
            return option.lower()
    return None


def yes_no(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return value == "Yes"


def strict_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def text_or_none(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    return str(value).strip() or None


def amount(value: Any) -> Optional[Decimal]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value).replace(",", "").strip())
    except InvalidOperation:
        return None


def resident_columns(p: dict) -> dict:
    """Map the resident form to residents table columns."""
    return {
        "property_location": text_or_none(p.get("propertyLocation")),
        "rent": amount(p.get("rent")),
        "description": text_or_none(p.get("description")),
        "religious_pref": text_or_none(p.get("religiousPref")),
        "roommate_food_pref": normalize_choice(p.get("roommateFoodPref"), RESIDENT_FOOD),
        "smokes": yes_no(p.get("smokes")),
        "roommate_smokes_ok": yes_no(p.get("roommateSmokesOk")),
        "roommate_age_pref": text_or_none(p.get("roommateAgePref")),
        "roommate_gender_pref": text_or_none(p.get("roommateGenderPref")),
        "environment_pref": normalize_choice(p.get("environmentPref"), ENVIRONMENTS),
        "curfew_time": text_or_none(p.get("curfewTime")),
        "works": strict_bool(p.get("works")),
        "roommate_night_ok": yes_no(p.get("roommateNightOk")),
        "profession": text_or_none(p.get("profession")),
        "relationship_status": normalize_choice(p.get("relationshipStatus"), RELATIONSHIPS),
        "roommate_pets_ok": yes_no(p.get("roommatePetsOk")),
        "extra_requirements": text_or_none(p.get("extraRequirements")),
        "drinks": yes_no(p.get("drinks")),
        "roommate_drinks_ok": yes_no(p.get("roommateDrinksOk")),
        "cleanliness": normalize_choice(p.get("cleanliness"), CLEANLINESS),
        "roommate_cooking_pref": normalize_choice(p.get("roommateCookingPref"), COOKING),
        "roommate_guests_ok": yes_no(p.get("roommateGuestsOk")),
    }


def roommate_columns(p: dict) -> dict:
    """Map the roommate form to roommates table columns."""
    # One question on the form covers both habits
    tolerates = yes_no(p.get("comfortableWithSmokingOrDrinking"))
    return {
        "current_location": text_or_none(p.get("currentLocation")),
        "cultural_pref": text_or_none(p.get("religiousPreferences")),
        "food_type": normalize_choice(p.get("dietaryPreference"), ROOMMATE_FOOD),
        "smokes": yes_no(p.get("smokes")),
        "drinks": yes_no(p.get("drinks")),
        "dietary_restrictions": text_or_none(p.get("dietaryRestrictions")),
        "roommate_smokes_ok": tolerates,
        "roommate_drinks_ok": tolerates,
        "roommate_age_pref": text_or_none(p.get("ageGroupPreference")),
        "roommate_gender_pref": text_or_none(p.get("genderPreference")),
        "environment_pref": normalize_choice(p.get("environmentPreference"), ENVIRONMENTS),
        "curfew_time": text_or_none(p.get("curfewTimings")),
        "owns_pets": bool(p.get("pets")),
        "pet_details": text_or_none(p.get("pets")),
        "profession": text_or_none(p.get("profession")),
        "work_study_schedule": normalize_choice(p.get("schedule"), SCHEDULES),
        "roommate_night_ok": yes_no(p.get("okayWithIrregularSchedule")),
        "relationship_status": normalize_choice(p.get("relationshipStatus"), RELATIONSHIPS),
        "profession_pref": normalize_choice(p.get("backgroundPreference"), BACKGROUNDS),
        "cleanliness": normalize_choice(p.get("cleanlinessHabits"), CLEANLINESS),
        "cooking_pref": normalize_choice(p.get("cookingPreference"), COOKING),
        "extra_expectations": text_or_none(p.get("extraExpectations")),
    }


class PreferenceService:
    def __init__(self, profiles, resolver: IdentifierResolver):
        self.profiles = profiles
        self.resolver = resolver

    async def _owner(self, user_id: Any, preferences: Optional[dict]) -> int:
        if not user_id or not preferences:
            raise ValidationError("Missing userId or preferences")
        name = preferences.get("name") if isinstance(preferences.get("name"), str) else None
        return await self.resolver.get_or_create(user_id, name=name)

    async def save_resident(self, user_id: Any, preferences: Optional[dict]) -> int:
        owner = await self._owner(user_id, preferences)
        await self.profiles.upsert_resident(owner, resident_columns(preferences))
        logger.info("Resident preferences saved", user_id=owner)
        return owner

    async def save_roommate(self, user_id: Any, preferences: Optional[dict]) -> int:
        owner = await self._owner(user_id, preferences)
        await self.profiles.upsert_roommate(owner, roommate_columns(preferences))
        logger.info("Roommate preferences saved", user_id=owner)
        return owner

    async def get_resident(self, identifier: Any) -> dict:
        user_id = await self.resolver.resolve(identifier)
        if user_id is None:
            raise NotFoundError("User not found")
        profile = await self.profiles.get_resident_by_user(user_id)
        if profile is None:
            raise NotFoundError("No resident preferences found")
        return profile

    async def get_roommate(self, identifier: Any) -> dict:
        user_id = await self.resolver.resolve(identifier)
        if user_id is None:
            raise NotFoundError("User not found")
        profile = await self.profiles.get_roommate_by_user(user_id)
        if profile is None:
            raise NotFoundError("No roommate preferences found")
        return profile
