from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from pymongo import ReturnDocument
from pymongo.database import Database

from database import create_document, find_live, get_db, now, sanitize, to_obj_id
from query import advanced_results, build_query
from relations import LIVE, embed_bootcamp, update_average_rating
from schemas import Review as ReviewSchema
from security import ensure_can_modify, require_role

router = APIRouter(prefix="/api/v1", tags=["reviews"])

REVIEW_FILTERS = {
    "title": str,
    "rating": int,
    "bootcamp": str,
    "user": str,
}


class ReviewCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    text: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=10)


class ReviewUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    text: Optional[str] = Field(None, min_length=1)
    rating: Optional[int] = Field(None, ge=1, le=10)


def not_allowed(user_id: str, review: dict) -> str:
    return f"The user with the id of {user_id} is not able to update or delete this review: {review.get('title')}"


@router.get("/reviews")
def get_reviews(request: Request, db: Database = Depends(get_db)):
    descriptor = build_query(request.query_params.multi_items(), REVIEW_FILTERS)
    return advanced_results(db["review"], descriptor, LIVE, populate=lambda docs: embed_bootcamp(db, docs))


@router.get("/bootcamps/{bootcampId}/reviews")
def get_bootcamp_reviews(bootcampId: str, db: Database = Depends(get_db)):
    reviews = [sanitize(r) for r in db["review"].find({"bootcamp": bootcampId, **LIVE})]
    return {"success": True, "count": len(reviews), "data": reviews}


@router.get("/reviews/{id}")
def get_review(id: str, db: Database = Depends(get_db)):
    review = find_live(db, "review", id)
    if not review:
        raise HTTPException(status_code=404, detail=f"No review found with the id of {id}")
    return {"success": True, "data": embed_bootcamp(db, [sanitize(review)])[0]}


@router.post("/bootcamps/{bootcampId}/reviews", status_code=201)
def create_review(
    bootcampId: str,
    payload: ReviewCreate,
    current_user=Depends(require_role("user", "admin")),
    db: Database = Depends(get_db),
):
    if not find_live(db, "bootcamp", bootcampId):
        raise HTTPException(status_code=404, detail=f"No bootcamp found with the id of {bootcampId}")
    # One live review per user and bootcamp; the partial unique index backs this up
    if db["review"].find_one({"bootcamp": bootcampId, "user": current_user["id"], **LIVE}):
        raise HTTPException(status_code=400, detail="Duplicate field value entered")
    review_doc = ReviewSchema(**payload.model_dump(), bootcamp=bootcampId, user=current_user["id"]).model_dump()
    review_doc = create_document(db, "review", review_doc)
    update_average_rating(db, bootcampId)
    return {"success": True, "data": sanitize(review_doc)}


@router.put("/reviews/{id}")
def update_review(
    id: str,
    payload: ReviewUpdate,
    current_user=Depends(require_role("user", "admin")),
    db: Database = Depends(get_db),
):
    review = find_live(db, "review", id)
    if not review:
        raise HTTPException(status_code=404, detail=f"No review found with the id of {id}")
    ensure_can_modify(current_user, review, not_allowed(current_user["id"], review))
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    updates["updatedAt"] = now()
    updated = db["review"].find_one_and_update(
        {"_id": review["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    update_average_rating(db, review["bootcamp"])
    return {"success": True, "data": sanitize(updated)}


@router.delete("/reviews/{id}")
def delete_review(
    id: str,
    current_user=Depends(require_role("user", "admin")),
    db: Database = Depends(get_db),
):
    review = db["review"].find_one({"_id": to_obj_id(id)})
    if not review:
        raise HTTPException(status_code=404, detail=f"No review found with the id of {id}")
    ensure_can_modify(current_user, review, not_allowed(current_user["id"], review))
    db["review"].update_one(
        {"_id": review["_id"]},
        {"$set": {"deleted": True, "title": f"{id}__DELETED", "updatedAt": now()}},
    )
    update_average_rating(db, review["bootcamp"])
    return {"success": True, "data": {}}
