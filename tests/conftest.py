import copy
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from authentication.authentication import create_token
from config import Settings
from db_connections import FRIEND, FRIEND_REQUEST, RecordConflict, RecordNotFound, RecordStore
from exceptions import NotFoundError
from friend.lifecycle import FriendLifecycleManager
from friend.models import FriendRelationship, FriendRequest
from main import create_app
from user_profile.schemas import UserProfile

ORIGIN = "https://collegemate.app"
APP_KEY = "<Android-App-v1>"
SAMPLE_CREATED_AT = datetime(2023, 2, 10, 0, 50, 43, tzinfo=timezone.utc)


def matches(record, filter):
    for key, expected in filter.items():
        if key == "$or":
            if not any(matches(record, branch) for branch in expected):
                return False
        elif record.get(key) != expected:
            return False
    return True


class InMemoryRecordStore(RecordStore):
    """Record store double enforcing the same unique keys as the Mongo indexes."""

    unique_fields = {
        FRIEND: ("userA", "userB"),
        FRIEND_REQUEST: ("pairKey",),
    }

    def __init__(self):
        self.collections = {FRIEND: {}, FRIEND_REQUEST: {}}

    async def get(self, collection, record_id):
        try:
            return copy.deepcopy(self.collections[collection][record_id])
        except KeyError:
            raise RecordNotFound(collection, record_id)

    async def put(self, collection, record):
        records = self.collections.setdefault(collection, {})
        if record["id"] in records:
            raise RecordConflict(collection, record["id"])
        fields = self.unique_fields.get(collection)
        if fields:
            values = tuple(record.get(field) for field in fields)
            for existing in records.values():
                if tuple(existing.get(field) for field in fields) == values:
                    raise RecordConflict(collection, record["id"])
        records[record["id"]] = copy.deepcopy(record)

    async def delete(self, collection, record_id):
        try:
            del self.collections[collection][record_id]
        except KeyError:
            raise RecordNotFound(collection, record_id)

    async def query(self, collection, filter):
        return [
            copy.deepcopy(record)
            for record in self.collections.get(collection, {}).values()
            if matches(record, filter)
        ]

    def records(self, collection):
        return list(self.collections[collection].values())


class StubProfileService:
    def __init__(self, profiles):
        self.profiles = {profile.email: profile for profile in profiles}
        self.calls = []

    async def get_profile(self, email):
        self.calls.append(email)
        if email not in self.profiles:
            raise NotFoundError(f"User {email} not found")
        return self.profiles[email]


USER_EMAILS = [
    "steve@wisc.edu",
    "park@wisc.edu",
    "drag@wisc.edu",
    "jerry@wisc.edu",
    "daekyun@wisc.edu",
    "jeonghyeon@wisc.edu",
    "random@wisc.edu",
    "tedpowel123@wisc.edu",
    "dalcmap@wisc.edu",
]


@pytest.fixture
def settings():
    return Settings(
        jwt_access_key="test-access-key",
        hash_salt="test-salt",
        webpage_origin=ORIGIN,
        application_keys=[APP_KEY],
        log_level="DEBUG",
    )


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def profile_service():
    profiles = [UserProfile(email=email, nickname=email.split("@")[0]) for email in USER_EMAILS]
    profiles.append(UserProfile(email="deleted@wisc.edu", deleted=True))
    profiles.append(UserProfile(email="locked@wisc.edu", locked=True))
    return StubProfileService(profiles)


@pytest.fixture
def manager(store, profile_service, settings):
    return FriendLifecycleManager(store, profile_service, settings.hash_salt)


@pytest.fixture
def seed(store, settings):
    """Friends and pending requests mirroring the production fixtures."""

    def add_friend(first, second):
        relationship = FriendRelationship.create(first, second, SAMPLE_CREATED_AT, settings.hash_salt)
        store.collections[FRIEND][relationship.id] = relationship.to_record()
        return relationship

    def add_request(sender, receiver, created_at=SAMPLE_CREATED_AT):
        friend_request = FriendRequest.create(sender, receiver, created_at, settings.hash_salt)
        store.collections[FRIEND_REQUEST][friend_request.id] = friend_request.to_record()
        return friend_request

    friends = [
        add_friend("steve@wisc.edu", "jerry@wisc.edu"),
        add_friend("steve@wisc.edu", "daekyun@wisc.edu"),
        add_friend("jeonghyeon@wisc.edu", "steve@wisc.edu"),
        add_friend("jerry@wisc.edu", "drag@wisc.edu"),
    ]
    requests = {
        "random": add_request("random@wisc.edu", "steve@wisc.edu"),
        "tedpowel123": add_request(
            "tedpowel123@wisc.edu", "steve@wisc.edu", SAMPLE_CREATED_AT + timedelta(minutes=1)
        ),
        "dalcmap": add_request(
            "dalcmap@wisc.edu", "steve@wisc.edu", SAMPLE_CREATED_AT + timedelta(minutes=2)
        ),
        "park_to_drag": add_request("park@wisc.edu", "drag@wisc.edu"),
    }
    return {"friends": friends, "requests": requests}


@pytest.fixture
def client(settings, store, profile_service):
    app = create_app(settings, record_store=store, profile_service=profile_service)
    return TestClient(app)


@pytest.fixture
def make_token(settings):
    def _make_token(email, type="access", token_type="user", expires_delta=None, **extra):
        return create_token(
            {"id": email, "type": type, "tokenType": token_type, **extra},
            settings.jwt_access_key,
            settings.jwt_algorithm,
            expires_delta=expires_delta,
        )

    return _make_token


@pytest.fixture
def web_headers(make_token):
    def _web_headers(email):
        return {"X-ACCESS-TOKEN": make_token(email), "Origin": ORIGIN}

    return _web_headers


@pytest.fixture
def app_headers(make_token):
    def _app_headers(email):
        return {"X-ACCESS-TOKEN": make_token(email), "X-APPLICATION-KEY": APP_KEY}

    return _app_headers
