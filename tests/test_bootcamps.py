from bson import ObjectId

import bootcamps
import config
from bootcamps import find_within_radius, radius_filter, search_radius
from conftest import bootcamp_payload
from geocoder import GeocodeResult


def test_create_and_fetch_bootcamp(client, make_user, create_bootcamp, geocoder):
    publisher = make_user("publisher")
    created = create_bootcamp(publisher, name="Devworks Bootcamp")

    res = client.get(f"/api/v1/bootcamps/{created['id']}")
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["id"] == created["id"]
    assert data["slug"] == "devworks-bootcamp"
    assert data["user"] == publisher["id"]
    assert data["location"]["type"] == "Point"
    assert data["location"]["coordinates"] == [-71.1054, 42.3505]
    assert data["location"]["zipcode"] == "02215"
    assert "address" not in data
    assert data["courses"] == []
    assert geocoder.calls == ["233 Bay State Rd Boston MA 02215"]


def test_create_requires_publisher_or_admin(client, make_user):
    user = make_user("user")
    res = client.post("/api/v1/bootcamps", json=bootcamp_payload(), headers=user["headers"])
    assert res.status_code == 403
    assert res.json()["error"] == "User role user is not authorized to access this route"


def test_create_requires_authentication(client):
    res = client.post("/api/v1/bootcamps", json=bootcamp_payload())
    assert res.status_code == 401


def test_create_validates_fields(client, make_user):
    publisher = make_user("publisher")
    res = client.post(
        "/api/v1/bootcamps",
        json=bootcamp_payload(name="x" * 71, careers=["Astrology"]),
        headers=publisher["headers"],
    )
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_create_unknown_address(client, make_user, geocoder):
    publisher = make_user("publisher")
    geocoder.results["nowhere"] = None
    res = client.post("/api/v1/bootcamps", json=bootcamp_payload(address="nowhere"), headers=publisher["headers"])
    assert res.status_code == 400


def test_duplicate_name_is_rejected(client, make_user, create_bootcamp):
    publisher = make_user("publisher")
    create_bootcamp(publisher, name="Devworks Bootcamp")
    res = client.post("/api/v1/bootcamps", json=bootcamp_payload("Devworks Bootcamp"), headers=publisher["headers"])
    assert res.status_code == 400


def test_get_unknown_and_invalid_ids(client):
    res = client.get("/api/v1/bootcamps/5d713995b721c3bb38c1f5d0")
    assert res.status_code == 404
    assert res.json()["error"] == "No bootcamp found with the id of 5d713995b721c3bb38c1f5d0"

    res = client.get("/api/v1/bootcamps/not-an-id")
    assert res.status_code == 400


def test_list_filters_sorts_and_paginates(client, db, make_user, create_bootcamp):
    publisher = make_user("publisher")
    for i, cost in enumerate([500, 1500, 900]):
        b = create_bootcamp(publisher, name=f"Bootcamp {i}")
        db["bootcamp"].update_one({"slug": b["slug"]}, {"$set": {"averageCost": cost, "averageRating": i + 5}})

    res = client.get(
        "/api/v1/bootcamps",
        params={"averageCost[lte]": "1000", "select": "name,averageCost", "sort": "-averageRating"},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["count"] == 2
    assert [b["name"] for b in body["data"]] == ["Bootcamp 2", "Bootcamp 0"]
    assert set(body["data"][0]) == {"id", "name", "averageCost", "courses"}
    assert body["pagination"] == {}

    res = client.get("/api/v1/bootcamps", params={"limit": "1", "page": "2", "sort": "name"})
    body = res.json()
    assert [b["name"] for b in body["data"]] == ["Bootcamp 1"]
    assert body["pagination"] == {"next": {"page": 3, "limit": 1}, "prev": {"page": 1, "limit": 1}}

    res = client.get("/api/v1/bootcamps", params={"page": "10"})
    assert res.json()["data"] == []
    assert res.json()["count"] == 0


def test_list_rejects_unknown_filter_fields(client):
    res = client.get("/api/v1/bootcamps", params={"password": "x"})
    assert res.status_code == 400
    res = client.get("/api/v1/bootcamps", params={"averageCost[lte]": "cheap"})
    assert res.status_code == 400


def test_update_by_owner_reslugs_and_keeps_owner(client, make_user, create_bootcamp):
    publisher = make_user("publisher")
    created = create_bootcamp(publisher)
    res = client.put(
        f"/api/v1/bootcamps/{created['id']}",
        json={"name": "ModernTech Bootcamp", "housing": False},
        headers=publisher["headers"],
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["slug"] == "moderntech-bootcamp"
    assert data["housing"] is False
    assert data["user"] == publisher["id"]


def test_update_by_other_publisher_is_forbidden(client, db, make_user, create_bootcamp):
    owner = make_user("publisher")
    other = make_user("publisher")
    created = create_bootcamp(owner)
    res = client.put(f"/api/v1/bootcamps/{created['id']}", json={"name": "Hijacked"}, headers=other["headers"])
    assert res.status_code == 403
    assert db["bootcamp"].find_one({"slug": "devworks-bootcamp"})["name"] == "Devworks Bootcamp"


def test_admin_can_update_any_bootcamp(client, make_user, create_bootcamp):
    owner = make_user("publisher")
    admin = make_user("admin")
    created = create_bootcamp(owner)
    res = client.put(f"/api/v1/bootcamps/{created['id']}", json={"phone": "555"}, headers=admin["headers"])
    assert res.status_code == 200
    assert res.json()["data"]["phone"] == "555"


def test_soft_delete_cascades_and_is_idempotent(client, db, make_user, create_bootcamp, create_course):
    owner = make_user("publisher")
    reviewer = make_user("user")
    created = create_bootcamp(owner)
    course = create_course(owner, created["id"])
    review = client.post(
        f"/api/v1/bootcamps/{created['id']}/reviews",
        json={"title": "Great", "text": "Learned a lot", "rating": 8},
        headers=reviewer["headers"],
    ).json()["data"]

    first = client.patch(f"/api/v1/bootcamps/{created['id']}", headers=owner["headers"])
    assert first.status_code == 200
    assert first.json()["data"]["deleted"] is True
    assert first.json()["data"]["name"] == f"{created['id']}__DELETED"

    second = client.patch(f"/api/v1/bootcamps/{created['id']}", headers=owner["headers"])
    assert second.status_code == 200
    assert second.json()["data"]["deleted"] is True
    assert second.json()["data"]["name"] == first.json()["data"]["name"]

    assert client.get(f"/api/v1/bootcamps/{created['id']}").status_code == 404
    assert client.get("/api/v1/bootcamps").json()["count"] == 0
    assert client.get(f"/api/v1/courses/{course['id']}").status_code == 404
    assert client.get(f"/api/v1/reviews/{review['id']}").status_code == 404
    assert db["course"].count_documents({"deleted": True}) == 1
    assert db["review"].count_documents({"deleted": True}) == 1
    assert db["course"].find_one({})["title"] == f"{course['id']}__DELETED"
    assert db["review"].find_one({})["title"] == f"{review['id']}__DELETED"


def test_search_radius():
    assert search_radius(6378, "km") == 1
    assert search_radius(3963, "mi") == 1
    assert search_radius(3963, "furlongs") == 1


def test_radius_filter_targets_live_bootcamps_around_a_point():
    assert radius_filter(-71.1054, 42.3505, 0.25) == {
        "location": {"$geoWithin": {"$centerSphere": [[-71.1054, 42.3505], 0.25]}},
        "deleted": {"$ne": True},
    }


class RecordingCollection:
    def __init__(self, docs):
        self.docs = docs
        self.queries = []

    def find(self, query):
        self.queries.append(query)
        return iter(self.docs)


def test_find_within_radius_uses_radius_filter():
    oid = ObjectId()
    collection = RecordingCollection([{"_id": oid, "name": "Devworks Bootcamp"}])
    found = find_within_radius({"bootcamp": collection}, -71.1054, 42.3505, 1.5)
    assert found == [{"id": str(oid), "name": "Devworks Bootcamp"}]
    assert collection.queries == [radius_filter(-71.1054, 42.3505, 1.5)]


def test_radius_search_without_results(client, geocoder, monkeypatch):
    geocoder.results["00000"] = GeocodeResult(latitude=0.0, longitude=0.0)
    monkeypatch.setattr(bootcamps, "find_within_radius", lambda db, lng, lat, radius: [])
    res = client.get("/api/v1/bootcamps/radius/00000/10/km")
    assert res.status_code == 404
    error = res.json()["error"]
    assert "00000" in error
    assert "10" in error
    assert "10 km (kilometers)" in error


def test_radius_search_unknown_zipcode(client, geocoder):
    geocoder.results["99999"] = None
    res = client.get("/api/v1/bootcamps/radius/99999/5/mi")
    assert res.status_code == 404
    assert "miles" in res.json()["error"]


def test_radius_search_returns_bootcamps(client, make_user, create_bootcamp, monkeypatch):
    publisher = make_user("publisher")
    created = create_bootcamp(publisher)
    seen = {}

    def fake_find(db, lng, lat, radius):
        seen.update(lng=lng, lat=lat, radius=radius)
        return [{"id": created["id"], "name": created["name"]}]

    monkeypatch.setattr(bootcamps, "find_within_radius", fake_find)
    res = client.get("/api/v1/bootcamps/radius/02215/3963/mi")
    assert res.status_code == 200
    assert res.json()["count"] == 1
    assert seen == {"lng": -71.1054, "lat": 42.3505, "radius": 1}


def test_radius_search_bad_distance(client):
    assert client.get("/api/v1/bootcamps/radius/02215/far/mi").status_code == 400


def test_upload_photo(client, db, make_user, create_bootcamp, store):
    owner = make_user("publisher")
    created = create_bootcamp(owner)
    res = client.post(
        f"/api/v1/bootcamps/{created['id']}/upload",
        files={"image": ("photo.JPG", b"\xff\xd8\xff fake jpeg", "image/jpeg")},
        headers=owner["headers"],
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["type"] == "jpg"
    assert data["mimeType"] == "image/jpeg"
    assert store.uploads[0]["key"].endswith(".jpg")
    assert db["bootcamp"].find_one({"slug": "devworks-bootcamp"})["photo"] == data["url"]


def test_upload_validation(client, make_user, create_bootcamp, store, monkeypatch):
    owner = make_user("publisher")
    created = create_bootcamp(owner)
    url = f"/api/v1/bootcamps/{created['id']}/upload"

    res = client.post(url, headers=owner["headers"])
    assert res.status_code == 400
    assert res.json()["error"] == "Please upload an image file"

    res = client.post(url, files={"image": ("notes.txt", b"hello", "text/plain")}, headers=owner["headers"])
    assert res.status_code == 400
    assert res.json()["error"] == "File must be an image"

    monkeypatch.setattr(config, "FILE_SIZE_LIMIT", 4)
    res = client.post(url, files={"image": ("big.png", b"12345", "image/png")}, headers=owner["headers"])
    assert res.status_code == 400
    assert res.json()["error"] == "Please limit the image size to less than 1MB"
    assert store.uploads == []


def test_upload_by_non_owner_is_forbidden(client, make_user, create_bootcamp):
    owner = make_user("publisher")
    other = make_user("publisher")
    created = create_bootcamp(owner)
    res = client.post(
        f"/api/v1/bootcamps/{created['id']}/upload",
        files={"image": ("photo.png", b"png", "image/png")},
        headers=other["headers"],
    )
    assert res.status_code == 403


def test_upload_store_failure(client, make_user, create_bootcamp, store):
    owner = make_user("publisher")
    created = create_bootcamp(owner)
    store.fail = True
    res = client.post(
        f"/api/v1/bootcamps/{created['id']}/upload",
        files={"image": ("photo.png", b"png", "image/png")},
        headers=owner["headers"],
    )
    assert res.status_code == 500
    assert res.json()["success"] is False
