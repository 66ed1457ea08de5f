"""
Rule-based compatibility scoring between a resident listing and a roommate.

Each rule awards its full weight or nothing. A rule that needs an attribute
missing (or null) on either side awards nothing, so the score is defined for
any pair of records.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping

Record = Mapping[str, Any]

FLEXIBLE = "flexible"


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _same(left: Any, right: Any) -> bool:
    return _present(left) and _present(right) and left == right


def _same_ignoring_case(left: Any, right: Any) -> bool:
    if not (_present(left) and _present(right)):
        return False
    return str(left).lower() == str(right).lower()


def _tolerated(tolerates: Any, has_habit: Any) -> bool:
    # Listing tolerates the habit, or the seeker does not have it
    return tolerates is True or has_habit is False


@dataclass(frozen=True)
class Rule:
    name: str
    weight: int
    check: Callable[[Record, Record], bool]


RULES = (
    Rule("location", 20, lambda r, m: _same_ignoring_case(r.get("property_location"), m.get("current_location"))),
    Rule("food", 15, lambda r, m: _same(r.get("roommate_food_pref"), m.get("food_type"))),
    Rule("smoking", 10, lambda r, m: _tolerated(r.get("roommate_smokes_ok"), m.get("smokes"))),
    Rule("drinking", 10, lambda r, m: _tolerated(r.get("roommate_drinks_ok"), m.get("drinks"))),
    Rule("cleanliness", 10, lambda r, m: _same(r.get("cleanliness"), m.get("cleanliness"))),
    Rule("gender", 10, lambda r, m: _same(r.get("roommate_gender_pref"), m.get("roommate_gender_pref"))),
    Rule("pets", 10, lambda r, m: _tolerated(r.get("roommate_pets_ok"), m.get("owns_pets"))),
    Rule(
        "profession",
        10,
        lambda r, m: _same(r.get("profession"), m.get("profession")) or m.get("profession_pref") == FLEXIBLE,
    ),
    Rule("environment", 5, lambda r, m: _same(r.get("environment_pref"), m.get("environment_pref"))),
)

MAX_SCORE = sum(rule.weight for rule in RULES)


def score_breakdown(resident: Record, roommate: Record) -> Dict[str, int]:
    """Points awarded by each rule, keyed by rule name."""
    resident = resident or {}
    roommate = roommate or {}
    return {rule.name: (rule.weight if rule.check(resident, roommate) else 0) for rule in RULES}


def compatibility_score(resident: Record, roommate: Record) -> int:
    return sum(score_breakdown(resident, roommate).values())
