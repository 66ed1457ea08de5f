import asyncio
from datetime import datetime, timezone
from itertools import count

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import IntegrityError

from app.config import IdentityCapabilities
from app.dependencies.services import (
    get_allow_placeholders,
    get_chat_available,
    get_chat_repository,
    get_identity_capabilities,
    get_match_repository,
    get_notifier,
    get_profile_repository,
    get_user_repository,
)
from app.main import app
from app.models.match import MatchStatus
from app.repositories.matches import RESIDENT_VIEW_COLUMNS, ROOMMATE_VIEW_COLUMNS

FULL_CAPABILITIES = IdentityCapabilities(schema_version=2, email=True, external_uid=True)


class RecordingNotifier:
    def __init__(self):
        self.events = []

    async def publish(self, room, event, data):
        self.events.append((room, event, data))


class FakeStore:
    """In-memory stand-in for the database behind the repositories."""

    def __init__(self):
        self.users = {}
        self.residents = {}
        self.roommates = {}
        self.matches = {}
        self.rooms = {}
        self.messages = []
        self._ids = {name: count(1) for name in ("user", "resident", "roommate", "match", "room", "message")}
        self.notifier = RecordingNotifier()

    def next_id(self, kind):
        return next(self._ids[kind])

    def add_user(self, name="Test User", email=None, firebase_uid=None, aadhar_no=None):
        user_id = self.next_id("user")
        self.users[user_id] = {
            "user_id": user_id,
            "name": name,
            "email": email,
            "firebase_uid": firebase_uid,
            "aadhar_no": aadhar_no or f"{user_id:012d}",
            "user_type": None,
        }
        return user_id

    def add_resident(self, user_id, **fields):
        resident_id = self.next_id("resident")
        self.residents[resident_id] = {"resident_id": resident_id, "user_id": user_id, **fields}
        return resident_id

    def add_roommate(self, user_id, **fields):
        roommate_id = self.next_id("roommate")
        self.roommates[roommate_id] = {"roommate_id": roommate_id, "user_id": user_id, **fields}
        return roommate_id

    def add_match(self, resident_id, roommate_id, score=0, status="pending", matched_on=None):
        match_id = self.next_id("match")
        self.matches[match_id] = {
            "match_id": match_id,
            "resident_id": resident_id,
            "roommate_id": roommate_id,
            "compatibility_score": score,
            "status": status,
            "matched_on": matched_on,
        }
        return match_id

    def add_room(self, first, second):
        room_id = self.next_id("room")
        user1, user2 = sorted((first, second))
        self.rooms[room_id] = {
            "chat_room_id": room_id,
            "user1_id": user1,
            "user2_id": user2,
            "created_at": datetime.now(timezone.utc),
        }
        return room_id


class FakeUserRepository:
    def __init__(self, store):
        self.store = store

    async def get_id(self, user_id):
        return user_id if user_id in self.store.users else None

    async def get_id_by_email(self, email):
        for user in self.store.users.values():
            if user["email"] and user["email"].lower() == email.lower():
                return user["user_id"]
        return None

    async def get_id_by_external_uid(self, external_uid):
        for user in self.store.users.values():
            if user["firebase_uid"] == external_uid:
                return user["user_id"]
        return None

    async def insert_placeholder(self, name, password, national_id, email=None, external_uid=None):
        for user in self.store.users.values():
            if user["aadhar_no"] == national_id:
                raise IntegrityError("INSERT INTO users", {}, Exception("duplicate aadhar_no"))
            if email and user["email"] and user["email"].lower() == email.lower():
                return None
            if external_uid and user["firebase_uid"] == external_uid:
                return None
        return self.store.add_user(name=name, email=email, firebase_uid=external_uid, aadhar_no=national_id)

    async def get_info(self, user_id):
        user = self.store.users.get(user_id)
        if user is None:
            return None
        return {key: user[key] for key in ("user_id", "name", "email", "user_type")}

    async def get_names(self, user_ids):
        return {uid: self.store.users[uid]["name"] for uid in user_ids if uid in self.store.users}

    async def list_recent(self, limit=200):
        ids = sorted(self.store.users, reverse=True)[:limit]
        return [dict(self.store.users[uid]) for uid in ids]

    async def create(self, values):
        for user in self.store.users.values():
            if user["aadhar_no"] == values["aadhar_no"]:
                raise IntegrityError("INSERT INTO users", {}, Exception("duplicate aadhar_no"))
        return self.store.add_user(name=values["name"], email=values.get("email"), aadhar_no=values["aadhar_no"])


class FakeProfileRepository:
    def __init__(self, store):
        self.store = store

    def _find(self, table, user_id):
        for row in table.values():
            if row["user_id"] == user_id:
                return row
        return None

    async def get_resident_by_user(self, user_id):
        row = self._find(self.store.residents, user_id)
        return dict(row) if row else None

    async def get_roommate_by_user(self, user_id):
        row = self._find(self.store.roommates, user_id)
        return dict(row) if row else None

    async def upsert_resident(self, user_id, data):
        row = self._find(self.store.residents, user_id)
        if row is None:
            self.store.add_resident(user_id, **data)
        else:
            row.update(data)

    async def upsert_roommate(self, user_id, data):
        row = self._find(self.store.roommates, user_id)
        if row is None:
            self.store.add_roommate(user_id, **data)
        else:
            row.update(data)


class FakeMatchRepository:
    def __init__(self, store):
        self.store = store
        self.generate_error = None

    def _pair_exists(self, resident_id, roommate_id):
        return any(
            m["resident_id"] == resident_id and m["roommate_id"] == roommate_id
            for m in self.store.matches.values()
        )

    async def get_resident_id_for_user(self, user_id):
        for row in self.store.residents.values():
            if row["user_id"] == user_id:
                return row["resident_id"]
        return None

    async def get_roommate_id_for_user(self, user_id):
        for row in self.store.roommates.values():
            if row["user_id"] == user_id:
                return row["roommate_id"]
        return None

    async def get_resident(self, resident_id):
        row = self.store.residents.get(resident_id)
        return dict(row) if row else None

    async def get_roommate(self, roommate_id):
        row = self.store.roommates.get(roommate_id)
        return dict(row) if row else None

    async def list_roommates_without_match(self, resident_id):
        owner = self.store.residents[resident_id]["user_id"]
        return [
            dict(row) for rid, row in sorted(self.store.roommates.items())
            if row["user_id"] != owner and not self._pair_exists(resident_id, rid)
        ]

    async def list_residents_without_match(self, roommate_id):
        owner = self.store.roommates[roommate_id]["user_id"]
        return [
            dict(row) for rid, row in sorted(self.store.residents.items())
            if row["user_id"] != owner and not self._pair_exists(rid, roommate_id)
        ]

    async def insert_matches(self, rows):
        if self.generate_error is not None:
            raise self.generate_error
        inserted = 0
        for row in rows:
            if self._pair_exists(row["resident_id"], row["roommate_id"]):
                continue
            self.store.add_match(row["resident_id"], row["roommate_id"], row["compatibility_score"], row["status"])
            inserted += 1
        return inserted

    def _pending(self, side, anchor_id, profiles, profile_key, view_columns):
        rows = []
        for match in self.store.matches.values():
            if match[side] != anchor_id or match["status"] != MatchStatus.pending.value:
                continue
            profile = profiles[match[profile_key]]
            user = self.store.users.get(profile["user_id"], {})
            row = dict(match)
            row.update({
                "profile_id": match[profile_key],
                "profile_user_id": profile["user_id"],
                "name": user.get("name"),
                "email": user.get("email"),
            })
            row.update({name: profile.get(name) for name in view_columns})
            rows.append(row)
        return sorted(rows, key=lambda r: (-r["compatibility_score"], r["match_id"]))

    async def list_pending_for_resident(self, resident_id):
        return self._pending("resident_id", resident_id, self.store.roommates, "roommate_id", ROOMMATE_VIEW_COLUMNS)

    async def list_pending_for_roommate(self, roommate_id):
        return self._pending("roommate_id", roommate_id, self.store.residents, "resident_id", RESIDENT_VIEW_COLUMNS)

    async def get_participants(self, match_id):
        match = self.store.matches.get(match_id)
        if match is None:
            return None
        resident = self.store.residents.get(match["resident_id"], {})
        roommate = self.store.roommates.get(match["roommate_id"], {})
        return {
            "match_id": match_id,
            "status": match["status"],
            "resident_id": match["resident_id"],
            "roommate_id": match["roommate_id"],
            "resident_user_id": resident.get("user_id"),
            "roommate_user_id": roommate.get("user_id"),
        }

    async def update_status(self, match_id, status, matched_on=None):
        self.store.matches[match_id]["status"] = status
        if matched_on is not None:
            self.store.matches[match_id]["matched_on"] = matched_on

    def _joined(self, match):
        resident = self.store.residents[match["resident_id"]]
        roommate = self.store.roommates[match["roommate_id"]]
        resident_user = self.store.users[resident["user_id"]]
        roommate_user = self.store.users[roommate["user_id"]]
        return {
            **match,
            "resident_user_id": resident["user_id"],
            "resident_name": resident_user["name"],
            "resident_email": resident_user["email"],
            "roommate_user_id": roommate["user_id"],
            "roommate_name": roommate_user["name"],
            "roommate_email": roommate_user["email"],
        }

    async def list_accepted_for_user(self, user_id):
        rows = [
            self._joined(m) for m in self.store.matches.values()
            if m["status"] == MatchStatus.accepted.value
        ]
        rows = [r for r in rows if user_id in (r["resident_user_id"], r["roommate_user_id"])]
        rows.sort(key=lambda r: r["match_id"])
        rows.sort(key=lambda r: (r["matched_on"] is None, -r["matched_on"].timestamp() if r["matched_on"] else 0))
        return rows

    async def list_all(self):
        rows = [self._joined(m) for m in self.store.matches.values()]
        return sorted(rows, key=lambda r: (-r["compatibility_score"], r["match_id"]))


class FakeChatRepository:
    def __init__(self, store):
        self.store = store

    async def count_users(self, user_ids):
        return len([uid for uid in set(user_ids) if uid in self.store.users])

    async def get_room_id(self, user1_id, user2_id):
        for room in self.store.rooms.values():
            if room["user1_id"] == user1_id and room["user2_id"] == user2_id:
                return room["chat_room_id"]
        return None

    async def create_room(self, user1_id, user2_id):
        if await self.get_room_id(user1_id, user2_id) is not None:
            return None
        return self.store.add_room(user1_id, user2_id)

    async def is_participant(self, room_id, user_id):
        room = self.store.rooms.get(room_id)
        return room is not None and user_id in (room["user1_id"], room["user2_id"])

    async def list_rooms(self, user_id):
        rooms = []
        for room in self.store.rooms.values():
            if user_id not in (room["user1_id"], room["user2_id"]):
                continue
            other = room["user2_id"] if room["user1_id"] == user_id else room["user1_id"]
            rooms.append({**room, "other_user_id": other, "other_user_name": self.store.users[other]["name"]})
        return sorted(rooms, key=lambda r: r["chat_room_id"], reverse=True)

    async def list_messages(self, room_id):
        return [
            {**m, "sender_name": self.store.users[m["sender_id"]]["name"]}
            for m in self.store.messages if m["chat_room_id"] == room_id
        ]

    async def add_message(self, room_id, sender_id, text):
        message = {
            "message_id": self.store.next_id("message"),
            "chat_room_id": room_id,
            "sender_id": sender_id,
            "message_text": text,
            "created_at": datetime.now(timezone.utc),
        }
        self.store.messages.append(message)
        return {key: message[key] for key in ("message_id", "sender_id", "message_text", "created_at")}


class DummyWebSocket:
    def __init__(self):
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        self.sent.append(data)


class BrokenWebSocket(DummyWebSocket):
    async def send_json(self, data):
        raise RuntimeError("socket closed")


class SlowWebSocket(DummyWebSocket):
    """Holds every send until released."""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()

    async def send_json(self, data):
        await self.release.wait()
        self.sent.append(data)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def overrides(store):
    """Route every repository dependency of the app to the in-memory store."""
    match_repo = FakeMatchRepository(store)
    app.dependency_overrides[get_user_repository] = lambda: FakeUserRepository(store)
    app.dependency_overrides[get_profile_repository] = lambda: FakeProfileRepository(store)
    app.dependency_overrides[get_match_repository] = lambda: match_repo
    app.dependency_overrides[get_chat_repository] = lambda: FakeChatRepository(store)
    app.dependency_overrides[get_identity_capabilities] = lambda: FULL_CAPABILITIES
    app.dependency_overrides[get_allow_placeholders] = lambda: True
    app.dependency_overrides[get_chat_available] = lambda: True
    app.dependency_overrides[get_notifier] = lambda: store.notifier
    yield app.dependency_overrides
    app.dependency_overrides.clear()


@pytest.fixture
def client(overrides):
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
