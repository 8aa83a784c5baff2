"""
Load sample data into the database, or clear it.

    python seeder.py -i                  # import _data/*.json
    python seeder.py -i --data-dir path  # import from another directory
    python seeder.py -d                  # delete users, bootcamps, courses and reviews

Each JSON file holds a list of documents using the API's field names. ``_id``
values are kept so documents can reference one another. User passwords are
given in plain text and hashed on import. Bootcamps without a ``location`` are
geocoded from their ``address``.
"""

import argparse
import json
import logging
import os
from typing import Dict, List, Optional

from bson import ObjectId
from pymongo.database import Database
from slugify import slugify

import config
import database
from database import ensure_indexes, now
from geocoder import Geocoder, get_geocoder
from relations import update_average_cost, update_average_rating
from schemas import Bootcamp as BootcampSchema
from schemas import Course as CourseSchema
from schemas import Review as ReviewSchema
from schemas import User as UserSchema
from security import hash_password

logger = logging.getLogger("devcamper.seeder")

DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "_data")

# Import order: owners before the documents that reference them
DATA_FILES = (
    ("user", "users.json"),
    ("bootcamp", "bootcamps.json"),
    ("course", "courses.json"),
    ("review", "reviews.json"),
)


def load_data(data_dir: str = DATA_DIR) -> Dict[str, List[dict]]:
    data = {}
    for collection, filename in DATA_FILES:
        path = os.path.join(data_dir, filename)
        if not os.path.exists(path):
            continue
        with open(path, encoding="utf-8") as f:
            data[collection] = json.load(f)
    return data


def _locate(geocoder: Optional[Geocoder], raw: dict) -> dict:
    if raw.get("location"):
        return raw["location"]
    address = raw.get("address")
    result = geocoder.geocode(address) if address and geocoder is not None else None
    if result is None:
        raise ValueError(f"Unable to find a location for bootcamp {raw.get('name')!r}")
    return result.to_location()


def prepare(collection: str, raw: dict, geocoder: Optional[Geocoder] = None) -> dict:
    """Validate one raw document and shape it the way the API stores it."""
    fields = {k: v for k, v in raw.items() if k not in ("_id", "id", "address")}
    if collection == "user":
        fields["email"] = fields["email"].lower()
        fields["password"] = hash_password(fields["password"])
        doc = UserSchema(**fields).model_dump()
    elif collection == "bootcamp":
        fields["name"] = fields["name"].strip()
        fields["slug"] = slugify(fields["name"])
        fields["location"] = _locate(geocoder, raw)
        doc = BootcampSchema(**fields).model_dump()
    elif collection == "course":
        doc = CourseSchema(**fields).model_dump()
    elif collection == "review":
        doc = ReviewSchema(**fields).model_dump()
    else:
        raise ValueError(f"Unknown collection {collection}")

    stamp = now()
    doc["createdAt"] = doc["updatedAt"] = stamp
    raw_id = raw.get("_id") or raw.get("id")
    if raw_id:
        doc["_id"] = ObjectId(raw_id)
    return doc


def import_data(db: Database, data: Dict[str, List[dict]], geocoder: Optional[Geocoder] = None) -> Dict[str, int]:
    counts = {}
    for collection, _ in DATA_FILES:
        docs = [prepare(collection, raw, geocoder) for raw in data.get(collection, [])]
        if docs:
            db[collection].insert_many(docs)
        counts[collection] = len(docs)

    for bootcamp_id in {c["bootcamp"] for c in data.get("course", [])}:
        update_average_cost(db, bootcamp_id)
    for bootcamp_id in {r["bootcamp"] for r in data.get("review", [])}:
        update_average_rating(db, bootcamp_id)
    return counts


def delete_data(db: Database) -> Dict[str, int]:
    return {collection: db[collection].delete_many({}).deleted_count for collection, _ in DATA_FILES}


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Import or delete DevCamper sample data")
    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument("-i", "--import", dest="import_data", action="store_true", help="import the JSON data")
    action.add_argument("-d", "--delete", dest="delete_data", action="store_true", help="delete all data")
    parser.add_argument("--data-dir", default=DATA_DIR, help="directory holding the JSON files")
    args = parser.parse_args(argv)

    logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if database.db is None:
        parser.error("DATABASE_URL and DATABASE_NAME must be set")
    db = database.db

    if args.import_data:
        ensure_indexes(db)
        counts = import_data(db, load_data(args.data_dir), get_geocoder())
        logger.info("Data imported: %s", counts)
    else:
        counts = delete_data(db)
        logger.info("All data deleted: %s", counts)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
