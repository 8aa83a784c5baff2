import logging
import math
import os
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from pydantic import BaseModel, EmailStr, Field
from pymongo import ReturnDocument
from pymongo.database import Database
from slugify import slugify

import config
from database import create_document, find_live, get_db, now, sanitize, to_obj_id
from geocoder import Geocoder, get_geocoder
from query import advanced_results, boolean, build_query
from relations import LIVE, cascade_soft_delete, embed_courses
from schemas import URL_PATTERN, Bootcamp as BootcampSchema, Career
from security import ensure_can_modify, require_role
from storage import ObjectStore, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/bootcamps", tags=["bootcamps"])

# Earth radius used to turn a distance into radians
EARTH_RADIUS_KM = 6378
EARTH_RADIUS_MI = 3963

BOOTCAMP_FILTERS = {
    "name": str,
    "slug": str,
    "careers": str,
    "averageCost": float,
    "averageRating": float,
    "housing": boolean,
    "jobAssistance": boolean,
    "jobGuarantee": boolean,
    "acceptGi": boolean,
    "location.state": str,
    "location.city": str,
    "location.zipcode": str,
    "user": str,
}


class BootcampCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=70)
    description: str = Field(..., min_length=1, max_length=500)
    website: Optional[str] = Field(None, pattern=URL_PATTERN)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    address: str = Field(..., min_length=1)
    careers: List[Career] = Field(..., min_length=1)
    housing: bool = False
    jobAssistance: bool = False
    jobGuarantee: bool = False
    acceptGi: bool = False


class BootcampUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=70)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    website: Optional[str] = Field(None, pattern=URL_PATTERN)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, min_length=1)
    careers: Optional[List[Career]] = Field(None, min_length=1)
    housing: Optional[bool] = None
    jobAssistance: Optional[bool] = None
    jobGuarantee: Optional[bool] = None
    acceptGi: Optional[bool] = None


def search_radius(distance: float, units: str) -> float:
    """Angular radius (radians) of a spherical cap ``distance`` wide; miles unless units is km."""
    return distance / (EARTH_RADIUS_KM if units == "km" else EARTH_RADIUS_MI)


def radius_filter(longitude: float, latitude: float, radius: float) -> dict:
    return {
        "location": {"$geoWithin": {"$centerSphere": [[longitude, latitude], radius]}},
        **LIVE,
    }


def find_within_radius(db: Database, longitude: float, latitude: float, radius: float) -> List[dict]:
    cursor = db["bootcamp"].find(radius_filter(longitude, latitude, radius))
    return [sanitize(b) for b in cursor]


def geocode_address(geocoder: Geocoder, address: str) -> dict:
    result = geocoder.geocode(address)
    if result is None:
        raise HTTPException(status_code=400, detail=f"Unable to find a location for the address {address}")
    return result.to_location()


def load_bootcamp(db: Database, id: str) -> dict:
    bootcamp = find_live(db, "bootcamp", id)
    if not bootcamp:
        raise HTTPException(status_code=404, detail=f"No bootcamp found with the id of {id}")
    return bootcamp


@router.get("")
def get_bootcamps(request: Request, db: Database = Depends(get_db)):
    descriptor = build_query(request.query_params.multi_items(), BOOTCAMP_FILTERS)
    return advanced_results(db["bootcamp"], descriptor, LIVE, populate=lambda docs: embed_courses(db, docs))


@router.get("/radius/{zipcode}/{distance}/{units}")
def get_bootcamps_in_radius(
    zipcode: str,
    distance: str,
    units: str,
    db: Database = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder),
):
    try:
        distance_value = float(distance)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{distance} is not a valid distance")
    if distance_value < 0:
        raise HTTPException(status_code=400, detail=f"{distance} is not a valid distance")

    loc = geocoder.geocode(zipcode)
    bootcamps = []
    if loc is not None:
        bootcamps = find_within_radius(db, loc.longitude, loc.latitude, search_radius(distance_value, units))
    if not bootcamps:
        unit_name = "kilometers" if units == "km" else "miles"
        raise HTTPException(
            status_code=404,
            detail=(
                f"No bootcamps were found within the provided combination of {zipcode} zipcode "
                f"and {distance} {units} ({unit_name}) radius. Try expanding your search."
            ),
        )
    return {"success": True, "count": len(bootcamps), "data": bootcamps}


@router.get("/{id}")
def get_bootcamp(id: str, db: Database = Depends(get_db)):
    bootcamp = load_bootcamp(db, id)
    return {"success": True, "data": embed_courses(db, [sanitize(bootcamp)])[0]}


@router.post("", status_code=201)
def create_bootcamp(
    payload: BootcampCreate,
    current_user=Depends(require_role("publisher", "admin")),
    db: Database = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder),
):
    data = payload.model_dump(exclude={"address"})
    data["name"] = payload.name.strip()
    bootcamp_doc = BootcampSchema(
        **data,
        slug=slugify(data["name"]),
        location=geocode_address(geocoder, payload.address),
        user=current_user["id"],
    ).model_dump()
    bootcamp_doc = create_document(db, "bootcamp", bootcamp_doc)
    logger.info("Bootcamp %s created by user %s", bootcamp_doc["_id"], current_user["id"])
    return {"success": True, "data": embed_courses(db, [sanitize(bootcamp_doc)])[0]}


@router.put("/{id}")
def update_bootcamp(
    id: str,
    payload: BootcampUpdate,
    current_user=Depends(require_role("publisher", "admin")),
    db: Database = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder),
):
    bootcamp = load_bootcamp(db, id)
    ensure_can_modify(
        current_user, bootcamp, f"The user with the id of {current_user['id']} is not able to update this bootcamp"
    )
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    address = updates.pop("address", None)
    if "name" in updates:
        updates["name"] = updates["name"].strip()
        updates["slug"] = slugify(updates["name"])
    if address:
        updates["location"] = geocode_address(geocoder, address)
    updates["updatedAt"] = now()
    updated = db["bootcamp"].find_one_and_update(
        {"_id": bootcamp["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    return {"success": True, "data": embed_courses(db, [sanitize(updated)])[0]}


@router.patch("/{id}")
def delete_bootcamp(
    id: str,
    current_user=Depends(require_role("publisher", "admin")),
    db: Database = Depends(get_db),
):
    """Soft delete: flag the bootcamp, mangle its name and cascade to courses and reviews."""
    bootcamp = db["bootcamp"].find_one({"_id": to_obj_id(id)})
    if not bootcamp:
        raise HTTPException(status_code=404, detail=f"No bootcamp found with the id of {id}")
    ensure_can_modify(
        current_user, bootcamp, f"The user with the id of {current_user['id']} is not able to delete this bootcamp"
    )
    updated = db["bootcamp"].find_one_and_update(
        {"_id": bootcamp["_id"]},
        {"$set": {"deleted": True, "name": f"{id}__DELETED", "updatedAt": now()}},
        return_document=ReturnDocument.AFTER,
    )
    cascade_soft_delete(db, id)
    return {"success": True, "data": sanitize(updated)}


@router.post("/{id}/upload")
def upload_bootcamp_photo(
    id: str,
    image: Optional[UploadFile] = File(None),
    current_user=Depends(require_role("publisher", "admin")),
    db: Database = Depends(get_db),
    storage: ObjectStore = Depends(get_storage),
):
    bootcamp = load_bootcamp(db, id)
    ensure_can_modify(
        current_user, bootcamp, f"The user with the id of {current_user['id']} is not able to update this bootcamp"
    )
    if image is None or not image.filename:
        raise HTTPException(status_code=400, detail="Please upload an image file")
    mime_type = image.content_type or ""
    if not mime_type.startswith("image"):
        raise HTTPException(status_code=400, detail="File must be an image")
    body = image.file.read()
    if len(body) > config.FILE_SIZE_LIMIT:
        size_mb = math.ceil(config.FILE_SIZE_LIMIT / 1048576)
        raise HTTPException(status_code=400, detail=f"Please limit the image size to less than {size_mb}MB")

    ext = os.path.splitext(image.filename)[1].lstrip(".").lower()
    key = f"{uuid.uuid4()}.{ext}" if ext else str(uuid.uuid4())
    url = storage.upload(key, body, mime_type)
    db["bootcamp"].update_one({"_id": bootcamp["_id"]}, {"$set": {"photo": url, "updatedAt": now()}})
    return {"success": True, "data": {"url": url, "type": ext, "mimeType": mime_type}}
