"""
Cross-collection work between bootcamps and their courses and reviews.

Reads embed related documents (a bootcamp's courses, a course's bootcamp).
Writes to courses and reviews call the recompute helpers explicitly so the
derived ``averageCost`` / ``averageRating`` on the bootcamp stay current, and
deleting a bootcamp cascades the soft delete to its children.
"""

import logging
import math
from typing import Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.database import Database

from database import now, sanitize, to_obj_id

logger = logging.getLogger(__name__)

LIVE = {"deleted": {"$ne": True}}


def embed_courses(db: Database, bootcamps: List[Dict]) -> List[Dict]:
    ids = [b["id"] for b in bootcamps if "id" in b]
    by_bootcamp: Dict[str, List[Dict]] = {i: [] for i in ids}
    for course in db["course"].find({"bootcamp": {"$in": ids}, **LIVE}):
        by_bootcamp[course["bootcamp"]].append(sanitize(course))
    for b in bootcamps:
        b["courses"] = by_bootcamp.get(b.get("id"), [])
    return bootcamps


def embed_bootcamp(db: Database, docs: List[Dict]) -> List[Dict]:
    """Replace each document's ``bootcamp`` id with {id, name, description}."""
    oids = []
    for d in docs:
        try:
            oids.append(ObjectId(d.get("bootcamp")))
        except (InvalidId, TypeError):
            continue
    found = {
        str(b["_id"]): sanitize(b)
        for b in db["bootcamp"].find({"_id": {"$in": oids}}, {"name": 1, "description": 1})
    }
    for d in docs:
        if d.get("bootcamp") in found:
            d["bootcamp"] = found[d["bootcamp"]]
    return docs


def _average(db: Database, collection: str, bootcamp_id: str, field: str) -> Optional[float]:
    agg = list(db[collection].aggregate([
        {"$match": {"bootcamp": bootcamp_id, **LIVE}},
        {"$group": {"_id": "$bootcamp", "avg": {"$avg": "$" + field}}},
    ]))
    if not agg or agg[0]["avg"] is None:
        return None
    return agg[0]["avg"]


def update_average_cost(db: Database, bootcamp_id: str) -> Optional[float]:
    avg = _average(db, "course", bootcamp_id, "tuition")
    average_cost = math.ceil(avg / 10) * 10 if avg is not None else None
    db["bootcamp"].update_one({"_id": to_obj_id(bootcamp_id)}, {"$set": {"averageCost": average_cost}})
    return average_cost


def update_average_rating(db: Database, bootcamp_id: str) -> Optional[float]:
    avg = _average(db, "review", bootcamp_id, "rating")
    average_rating = round(avg, 1) if avg is not None else None
    db["bootcamp"].update_one({"_id": to_obj_id(bootcamp_id)}, {"$set": {"averageRating": average_rating}})
    return average_rating


def cascade_soft_delete(db: Database, bootcamp_id: str) -> None:
    """Soft delete every course and review of a bootcamp that was just deleted."""
    for collection in ("course", "review"):
        for doc in db[collection].find({"bootcamp": bootcamp_id, **LIVE}, {"_id": 1}):
            db[collection].update_one(
                {"_id": doc["_id"]},
                {"$set": {"deleted": True, "title": f"{doc['_id']}__DELETED", "updatedAt": now()}},
            )
    logger.info("Cascaded delete of bootcamp %s to its courses and reviews", bootcamp_id)
