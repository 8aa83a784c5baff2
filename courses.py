from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from pymongo import ReturnDocument
from pymongo.database import Database

from database import create_document, find_live, get_db, now, sanitize, to_obj_id
from query import advanced_results, boolean, build_query
from relations import LIVE, embed_bootcamp, update_average_cost
from schemas import Course as CourseSchema, Skill
from security import ensure_can_modify, require_role

router = APIRouter(prefix="/api/v1", tags=["courses"])

COURSE_FILTERS = {
    "title": str,
    "weeks": int,
    "tuition": float,
    "minimumSkill": str,
    "scholarshipAvailable": boolean,
    "bootcamp": str,
    "user": str,
}


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    weeks: int = Field(..., ge=1)
    tuition: float = Field(..., ge=0)
    minimumSkill: Skill
    scholarshipAvailable: bool = False


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1)
    weeks: Optional[int] = Field(None, ge=1)
    tuition: Optional[float] = Field(None, ge=0)
    minimumSkill: Optional[Skill] = None
    scholarshipAvailable: Optional[bool] = None


def load_course(db: Database, id: str) -> dict:
    course = find_live(db, "course", id)
    if not course:
        raise HTTPException(status_code=404, detail=f"No course found with the id of {id}")
    return course


def not_allowed(user_id: str, course: dict) -> str:
    return f"The user with the id of {user_id} is not able to update or delete this course: {course.get('title')}"


@router.get("/courses")
def get_courses(request: Request, db: Database = Depends(get_db)):
    descriptor = build_query(request.query_params.multi_items(), COURSE_FILTERS)
    return advanced_results(db["course"], descriptor, LIVE, populate=lambda docs: embed_bootcamp(db, docs))


@router.get("/bootcamps/{bootcampId}/courses")
def get_bootcamp_courses(bootcampId: str, db: Database = Depends(get_db)):
    courses = [sanitize(c) for c in db["course"].find({"bootcamp": bootcampId, **LIVE})]
    return {"success": True, "count": len(courses), "data": courses}


@router.get("/courses/{id}")
def get_course(id: str, db: Database = Depends(get_db)):
    course = sanitize(load_course(db, id))
    return {"success": True, "data": embed_bootcamp(db, [course])[0]}


@router.post("/bootcamps/{bootcampId}/courses", status_code=201)
def create_course(
    bootcampId: str,
    payload: CourseCreate,
    current_user=Depends(require_role("publisher", "admin")),
    db: Database = Depends(get_db),
):
    bootcamp = find_live(db, "bootcamp", bootcampId)
    if not bootcamp:
        raise HTTPException(status_code=404, detail=f"No bootcamp found with the id of {bootcampId}")
    ensure_can_modify(
        current_user,
        bootcamp,
        f"The user with the id of {current_user['id']} is not able to add a course to this bootcamp: {bootcamp['name']}",
    )
    course_doc = CourseSchema(**payload.model_dump(), bootcamp=bootcampId, user=current_user["id"]).model_dump()
    course_doc = create_document(db, "course", course_doc)
    update_average_cost(db, bootcampId)
    return {"success": True, "data": sanitize(course_doc)}


@router.put("/courses/{id}")
def update_course(
    id: str,
    payload: CourseUpdate,
    current_user=Depends(require_role("publisher", "admin")),
    db: Database = Depends(get_db),
):
    course = load_course(db, id)
    ensure_can_modify(current_user, course, not_allowed(current_user["id"], course))
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    updates["updatedAt"] = now()
    updated = db["course"].find_one_and_update(
        {"_id": course["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    update_average_cost(db, course["bootcamp"])
    return {"success": True, "data": sanitize(updated)}


@router.patch("/courses/{id}")
def delete_course(
    id: str,
    current_user=Depends(require_role("publisher", "admin")),
    db: Database = Depends(get_db),
):
    course = db["course"].find_one({"_id": to_obj_id(id)})
    if not course:
        raise HTTPException(status_code=404, detail=f"No course found with the id of {id}")
    ensure_can_modify(current_user, course, not_allowed(current_user["id"], course))
    updated = db["course"].find_one_and_update(
        {"_id": course["_id"]},
        {"$set": {"deleted": True, "title": f"{id}__DELETED", "updatedAt": now()}},
        return_document=ReturnDocument.AFTER,
    )
    update_average_cost(db, course["bootcamp"])
    return {"success": True, "data": sanitize(updated)}
