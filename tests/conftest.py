import itertools

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import ensure_indexes, get_db, now
from errors import UpstreamError
from geocoder import GeocodeResult, get_geocoder
from mailer import get_mailer
from main import app
from security import create_access_token, hash_password
from storage import get_storage

PASSWORD = "Secret123!"
PASSWORD_HASH = hash_password(PASSWORD)

BOSTON = GeocodeResult(
    latitude=42.3505,
    longitude=-71.1054,
    formattedAddress="233 Bay State Rd, Boston, MA 02215, US",
    street="233 Bay State Rd",
    city="Boston",
    state="MA",
    zipcode="02215",
    country="US",
)


class FakeGeocoder:
    def __init__(self):
        self.results = {}
        self.calls = []

    def geocode(self, address):
        self.calls.append(address)
        return self.results.get(address, BOSTON)


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to, subject, text):
        if self.fail:
            raise UpstreamError("Email could not be sent")
        self.sent.append({"to": to, "subject": subject, "text": text})


class FakeStore:
    def __init__(self):
        self.uploads = []
        self.fail = False

    def upload(self, key, body, content_type):
        if self.fail:
            raise UpstreamError("There was an error while uploading the file")
        self.uploads.append({"key": key, "body": body, "content_type": content_type})
        return f"https://bucket.example.com/{key}"


@pytest.fixture(autouse=True)
def reset_rate_limit():
    app.state.limiter.reset()


@pytest.fixture
def db():
    database = mongomock.MongoClient()["devcamper_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def client(db, geocoder, mailer, store):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_storage] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = itertools.count()

    def _make_user(role="user", email=None):
        n = next(counter)
        doc = {
            "name": f"{role.title()} {n}",
            "email": email or f"{role}{n}@example.com",
            "role": role,
            "password": PASSWORD_HASH,
            "active": True,
            "createdAt": now(),
        }
        user_id = str(db["user"].insert_one(doc).inserted_id)
        token = create_access_token(user_id)
        return {"id": user_id, "email": doc["email"], "headers": {"Authorization": f"Bearer {token}"}}

    return _make_user


def bootcamp_payload(name="Devworks Bootcamp", **overrides):
    payload = {
        "name": name,
        "description": "Devworks is a full stack JavaScript Bootcamp located in the heart of Boston",
        "website": "https://devworks.com",
        "phone": "(111) 111-1111",
        "email": "enroll@devworks.com",
        "address": "233 Bay State Rd Boston MA 02215",
        "careers": ["Web Development", "UI/UX", "Business"],
        "housing": True,
        "jobAssistance": True,
    }
    payload.update(overrides)
    return payload


def course_payload(title="Front End Web Development", tuition=8000, **overrides):
    payload = {
        "title": title,
        "description": "This course will provide you with all of the essentials to become a successful frontend web developer.",
        "weeks": 8,
        "tuition": tuition,
        "minimumSkill": "beginner",
        "scholarshipAvailable": True,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_bootcamp(client):
    def _create_bootcamp(user, name="Devworks Bootcamp", **overrides):
        res = client.post("/api/v1/bootcamps", json=bootcamp_payload(name, **overrides), headers=user["headers"])
        assert res.status_code == 201, res.text
        return res.json()["data"]

    return _create_bootcamp


@pytest.fixture
def create_course(client):
    def _create_course(user, bootcamp_id, title="Front End Web Development", tuition=8000, **overrides):
        res = client.post(
            f"/api/v1/bootcamps/{bootcamp_id}/courses",
            json=course_payload(title, tuition, **overrides),
            headers=user["headers"],
        )
        assert res.status_code == 201, res.text
        return res.json()["data"]

    return _create_course
