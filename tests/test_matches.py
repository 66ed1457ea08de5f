from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from app.services.identity import IdentifierResolver
from app.services.matching import MatchService
from tests.conftest import FULL_CAPABILITIES, FakeMatchRepository, FakeStore, FakeUserRepository

GOOD_ROOMMATE = {
    "current_location": "Pune", "food_type": "vegetarian", "smokes": False, "drinks": False,
    "cleanliness": "neat", "roommate_gender_pref": "female", "owns_pets": False,
    "profession": "engineer", "environment_pref": "quiet",
}
RESIDENT = {
    "property_location": "pune", "rent": 12000, "roommate_food_pref": "vegetarian",
    "roommate_smokes_ok": False, "roommate_drinks_ok": False, "cleanliness": "neat",
    "roommate_gender_pref": "female", "roommate_pets_ok": False, "profession": "engineer",
    "environment_pref": "quiet",
}


def seed_pair(store):
    """One resident and two roommates (a perfect and a weak fit)."""
    owner = store.add_user(name="Asha", email="asha@example.com")
    good = store.add_user(name="Bela", email="bela@example.com")
    weak = store.add_user(name="Chand", email="chand@example.com")
    resident_id = store.add_resident(owner, **RESIDENT)
    good_id = store.add_roommate(good, **GOOD_ROOMMATE)
    weak_id = store.add_roommate(weak, current_location="Delhi", smokes=True)
    return owner, good, weak, resident_id, good_id, weak_id


def make_service(store):
    matches = FakeMatchRepository(store)
    resolver = IdentifierResolver(FakeUserRepository(store), FULL_CAPABILITIES)
    return MatchService(matches, resolver, notifier=store.notifier), matches


@pytest.mark.asyncio
async def test_generation_is_idempotent_and_skips_own_profiles():
    store = FakeStore()
    owner, _, _, resident_id, _, _ = seed_pair(store)
    # The resident's owner also has a roommate profile; never paired with themself
    store.add_roommate(owner, current_location="Pune")
    service, _ = make_service(store)

    assert await service.generate_for_resident(resident_id) == 2
    assert await service.generate_for_resident(resident_id) == 0
    assert len(store.matches) == 2


@pytest.mark.asyncio
async def test_generation_from_roommate_side_and_unknown_anchor():
    store = FakeStore()
    _, _, _, resident_id, good_id, _ = seed_pair(store)
    service, _ = make_service(store)

    assert await service.generate_for_roommate(good_id) == 1
    assert await service.generate_for_resident(resident_id) == 1
    assert await service.generate_for_resident(999) == 0
    pairs = {(m["resident_id"], m["roommate_id"]) for m in store.matches.values()}
    assert len(pairs) == len(store.matches) == 2


@pytest.mark.asyncio
async def test_lazy_generation_survives_store_failure():
    store = FakeStore()
    seed_pair(store)
    service, matches = make_service(store)
    matches.generate_error = OperationalError("INSERT INTO matches", {}, Exception("db down"))

    assert await service.resident_matches("asha@example.com") == []


@pytest.mark.asyncio
async def test_resident_matches_generated_and_ordered(client, store):
    owner, good, weak, resident_id, good_id, weak_id = seed_pair(store)

    async with client:
        response = await client.get("/api/matches/resident-matches/asha%40example.com")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    matches = body["matches"]
    assert [m["id"] for m in matches] == [good_id, weak_id]
    assert matches[0]["compatibilityScore"] == 100
    assert matches[0]["compatibilityScore"] >= matches[1]["compatibilityScore"]
    first = matches[0]
    assert first["type"] == "roommate"
    assert first["userId"] == good
    assert first["name"] == "Bela"
    assert first["status"] == "pending"
    assert first["preferences"]["currentLocation"] == "Pune"
    assert "schedule" in first["preferences"]


@pytest.mark.asyncio
async def test_equal_scores_are_ordered_by_match_id(client, store):
    owner = store.add_user(name="Asha")
    resident_id = store.add_resident(owner)
    later = store.add_roommate(store.add_user(name="B"))
    earlier = store.add_roommate(store.add_user(name="C"))
    second = store.add_match(resident_id, later, score=40)
    first = store.add_match(resident_id, earlier, score=40)
    top = store.add_match(resident_id, store.add_roommate(store.add_user(name="D")), score=90)

    async with client:
        response = await client.get(f"/api/matches/resident-matches/{owner}")

    assert [m["matchId"] for m in response.json()["matches"]] == [top, second, first]


@pytest.mark.asyncio
async def test_roommate_matches_show_resident_view(client, store):
    _, good, _, resident_id, _, _ = seed_pair(store)

    async with client:
        response = await client.get(f"/api/matches/roommate-matches/{good}")

    matches = response.json()["matches"]
    assert len(matches) == 1
    assert matches[0]["type"] == "resident"
    assert matches[0]["id"] == resident_id
    assert matches[0]["preferences"]["maxRent"] == 12000
    assert matches[0]["preferences"]["propertyLocation"] == "pune"


@pytest.mark.asyncio
async def test_no_profile_message(client, store):
    user_id = store.add_user(name="Nobody")

    async with client:
        roommate = await client.get(f"/api/matches/roommate-matches/{user_id}")
        resident = await client.get(f"/api/matches/resident-matches/{user_id}")

    assert roommate.status_code == 200
    assert roommate.json() == {"success": True, "matches": [], "message": "No roommate profile found"}
    assert resident.json()["message"] == "No resident profile found"


@pytest.mark.asyncio
async def test_match_listing_for_unknown_user_is_404_and_creates_nothing(client, store):
    async with client:
        response = await client.get("/api/matches/resident-matches/ghost%40example.com")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "User not found"}
    assert store.users == {}


@pytest.mark.asyncio
async def test_accept_sets_matched_on_and_notifies(client, store):
    owner, good, _, resident_id, good_id, _ = seed_pair(store)
    match_id = store.add_match(resident_id, good_id, score=100)

    async with client:
        response = await client.post("/api/matches/action", json={"userId": good, "matchId": match_id, "action": "accept"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Match accepted", "isMatch": True, "matchId": match_id}
    assert store.matches[match_id]["status"] == "accepted"
    assert store.matches[match_id]["matched_on"] is not None
    rooms = {room for room, event, _ in store.notifier.events if event == "match_accepted"}
    assert rooms == {f"user_{owner}", f"user_{good}"}


@pytest.mark.asyncio
async def test_reject_leaves_matched_on(client, store):
    owner, _, _, resident_id, good_id, _ = seed_pair(store)
    match_id = store.add_match(resident_id, good_id)

    async with client:
        response = await client.post("/api/matches/action", json={"userId": str(owner), "matchId": str(match_id), "action": "reject"})

    assert response.json() == {"success": True, "message": "Match rejected", "isMatch": False}
    assert store.matches[match_id]["status"] == "rejected"
    assert store.matches[match_id]["matched_on"] is None
    assert store.notifier.events == []


@pytest.mark.asyncio
async def test_terminal_match_transitions(client, store):
    owner, _, _, resident_id, good_id, _ = seed_pair(store)
    matched_on = datetime(2025, 1, 1, tzinfo=timezone.utc)
    match_id = store.add_match(resident_id, good_id, status="accepted", matched_on=matched_on)

    async with client:
        again = await client.post("/api/matches/action", json={"userId": owner, "matchId": match_id, "action": "accept"})
        flip = await client.post("/api/matches/action", json={"userId": owner, "matchId": match_id, "action": "reject"})

    assert again.status_code == 200
    assert again.json()["isMatch"] is True
    assert store.matches[match_id]["matched_on"] == matched_on
    assert flip.status_code == 400
    assert flip.json()["error"] == "Match is already accepted"
    assert store.matches[match_id]["status"] == "accepted"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, status, error",
    [
        ({"matchId": 1, "action": "accept"}, 400, "Missing userId, matchId, or action"),
        ({"userId": 1, "matchId": 1}, 400, "Missing userId, matchId, or action"),
        ({"userId": "abc", "matchId": 1, "action": "accept"}, 400, "userId and matchId must be numeric"),
        ({"userId": 1, "matchId": 999, "action": "accept"}, 404, "Match not found"),
    ],
)
async def test_action_validation(client, store, payload, status, error):
    async with client:
        response = await client.post("/api/matches/action", json=payload)

    assert response.status_code == status
    assert response.json() == {"success": False, "error": error}


@pytest.mark.asyncio
@pytest.mark.parametrize("action", ["accept", "reject", "maybe"])
async def test_non_participant_is_forbidden_for_any_action(client, store, action):
    _, _, weak, resident_id, good_id, _ = seed_pair(store)
    match_id = store.add_match(resident_id, good_id)

    async with client:
        response = await client.post("/api/matches/action", json={"userId": weak, "matchId": match_id, "action": action})

    assert response.status_code == 403
    assert response.json()["error"] == "User not a participant in this match"
    assert store.matches[match_id]["status"] == "pending"


@pytest.mark.asyncio
async def test_invalid_action_from_participant(client, store):
    owner, _, _, resident_id, good_id, _ = seed_pair(store)
    match_id = store.add_match(resident_id, good_id)

    async with client:
        response = await client.post("/api/matches/action", json={"userId": owner, "matchId": match_id, "action": "maybe"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid action. Must be 'accept' or 'reject'"


@pytest.mark.asyncio
async def test_mutual_matches_show_counterpart(client, store):
    owner, good, weak, resident_id, good_id, weak_id = seed_pair(store)
    now = datetime.now(timezone.utc)
    older = store.add_match(resident_id, good_id, status="accepted", matched_on=now - timedelta(days=1))
    newer = store.add_match(resident_id, weak_id, status="accepted", matched_on=now)

    async with client:
        owner_view = await client.get("/api/matches/mutual-matches/asha@example.com")
        good_view = await client.get(f"/api/matches/mutual-matches/{good}")

    owner_matches = owner_view.json()["matches"]
    assert [m["matchId"] for m in owner_matches] == [newer, older]
    assert owner_matches[0]["other"] == {
        "userId": weak, "name": "Chand", "email": "chand@example.com", "type": "roommate", "id": weak_id,
    }
    good_matches = good_view.json()["matches"]
    assert len(good_matches) == 1
    assert good_matches[0]["other"]["type"] == "resident"
    assert good_matches[0]["other"]["userId"] == owner


@pytest.mark.asyncio
async def test_list_all_matches(client, store):
    _, _, _, resident_id, good_id, weak_id = seed_pair(store)
    low = store.add_match(resident_id, weak_id, score=10)
    high = store.add_match(resident_id, good_id, score=90)

    async with client:
        response = await client.get("/api/matches/")

    rows = response.json()["matches"]
    assert [row["match_id"] for row in rows] == [high, low]
    assert rows[0]["resident_name"] == "Asha"
    assert rows[0]["roommate_name"] == "Bela"
