from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, EmailStr, Field
from pymongo import ReturnDocument
from pymongo.database import Database

from database import create_document, get_db, now, sanitize, to_obj_id
from query import advanced_results, boolean, build_query
from schemas import Role, User as UserSchema
from security import hash_password, require_role

router = APIRouter(
    prefix="/api/v1/users",
    tags=["users"],
    dependencies=[Depends(require_role("admin"))],
)

USER_FILTERS = {
    "name": str,
    "email": str,
    "role": str,
    "active": boolean,
}


class CreateUserRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: Role = "user"


class UpdateUserRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)
    role: Optional[Role] = None
    active: Optional[bool] = None
    profilePic: Optional[str] = None
    bio: Optional[str] = None


def load_user(db: Database, id: str) -> dict:
    user = db["user"].find_one({"_id": to_obj_id(id)})
    if not user:
        raise HTTPException(status_code=404, detail=f"No user found with the id of {id}")
    return user


@router.get("")
def get_users(request: Request, db: Database = Depends(get_db)):
    descriptor = build_query(request.query_params.multi_items(), USER_FILTERS)
    return advanced_results(db["user"], descriptor)


@router.get("/{id}")
def get_user(id: str, db: Database = Depends(get_db)):
    return {"success": True, "data": sanitize(load_user(db, id))}


@router.post("", status_code=201)
def create_user(payload: CreateUserRequest, db: Database = Depends(get_db)):
    user_doc = UserSchema(
        name=payload.name,
        email=payload.email.lower(),
        role=payload.role,
        password=hash_password(payload.password),
    ).model_dump()
    user_doc = create_document(db, "user", user_doc)
    return {"success": True, "data": sanitize(user_doc)}


@router.put("/{id}")
def update_user(id: str, payload: UpdateUserRequest, db: Database = Depends(get_db)):
    user = load_user(db, id)
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in updates:
        updates["email"] = updates["email"].lower()
    if "password" in updates:
        updates["password"] = hash_password(updates["password"])
    updates["updatedAt"] = now()
    updated = db["user"].find_one_and_update(
        {"_id": user["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    return {"success": True, "data": sanitize(updated)}


@router.delete("/{id}")
def delete_user(id: str, db: Database = Depends(get_db)):
    user = load_user(db, id)
    db["user"].delete_one({"_id": user["_id"]})
    return {"success": True, "data": {}}
