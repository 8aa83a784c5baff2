import hashlib
import logging
import secrets
from datetime import timedelta, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, EmailStr, Field
from pymongo import ReturnDocument
from pymongo.database import Database

import config
from database import create_document, get_db, now, sanitize, to_obj_id
from errors import UpstreamError
from mailer import Mailer, get_mailer
from schemas import User as UserSchema
from security import create_access_token, get_current_user, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: Literal["user", "publisher"] = "user"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=6, max_length=128)


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    profilePic: Optional[str] = None
    bio: Optional[str] = None
    twitterURL: Optional[str] = None
    githubURL: Optional[str] = None
    facebookURL: Optional[str] = None
    instagramURL: Optional[str] = None


class UpdatePasswordRequest(BaseModel):
    currentPassword: str
    newPassword: str = Field(..., min_length=6, max_length=128)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def send_token_response(user_id: str, response: Response) -> dict:
    """Issue a JWT in the body and as an httpOnly cookie."""
    token = create_access_token(user_id)
    response.set_cookie(
        "token",
        token,
        max_age=config.COOKIE_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=config.ENVIRONMENT == "production",
    )
    return {"success": True, "token": token}


@router.post("/register")
def register(payload: RegisterRequest, response: Response, db: Database = Depends(get_db)):
    user_doc = UserSchema(
        name=payload.name,
        email=payload.email.lower(),
        role=payload.role,
        password=hash_password(payload.password),
    ).model_dump()
    user_doc = create_document(db, "user", user_doc)
    logger.info("Registered user %s as %s", user_doc["_id"], payload.role)
    return send_token_response(str(user_doc["_id"]), response)


@router.post("/login")
def login(payload: LoginRequest, response: Response, db: Database = Depends(get_db)):
    user = db["user"].find_one({"email": payload.email.lower()})
    if not user or not verify_password(payload.password, user.get("password", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return send_token_response(str(user["_id"]), response)


@router.get("/logout")
def logout(response: Response):
    response.set_cookie("token", "none", max_age=10, httponly=True)
    return {"success": True, "data": {}}


@router.get("/me")
def me(current_user=Depends(get_current_user)):
    return {"success": True, "data": current_user}


@router.post("/forgotpassword")
def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    db: Database = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    user = db["user"].find_one({"email": payload.email.lower()})
    if not user:
        raise HTTPException(status_code=404, detail="There is no user with that email")

    reset_token = secrets.token_hex(20)
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {
            "resetPasswordToken": hash_reset_token(reset_token),
            "resetPasswordExpire": now() + timedelta(minutes=config.RESET_TOKEN_EXPIRE_MINUTES),
        }},
    )

    reset_url = f"{request.base_url}api/v1/auth/resetpassword/{reset_token}"
    text = (
        "You are receiving this email because you (or someone else) has requested the reset of a password. "
        f"Please make a PUT request to:\n\n{reset_url}"
    )
    try:
        mailer.send(user["email"], "Password reset token", text)
    except UpstreamError:
        db["user"].update_one(
            {"_id": user["_id"]},
            {"$set": {"resetPasswordToken": None, "resetPasswordExpire": None}},
        )
        raise HTTPException(status_code=500, detail="Email could not be sent")
    return {"success": True, "data": "Email sent"}


@router.put("/resetpassword/{resettoken}")
def reset_password(
    resettoken: str,
    payload: ResetPasswordRequest,
    response: Response,
    db: Database = Depends(get_db),
):
    user = db["user"].find_one({"resetPasswordToken": hash_reset_token(resettoken)})
    expires_at = user.get("resetPasswordExpire") if user else None
    # The driver may hand back naive UTC datetimes
    if expires_at is not None and expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if expires_at is None or expires_at < now():
        raise HTTPException(status_code=400, detail="Invalid token")

    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {
            "password": hash_password(payload.password),
            "resetPasswordToken": None,
            "resetPasswordExpire": None,
            "updatedAt": now(),
        }},
    )
    return send_token_response(str(user["_id"]), response)


@router.patch("/updateuserprofile")
def update_user_profile(
    payload: UpdateProfileRequest,
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in updates:
        updates["email"] = updates["email"].lower()
    updates["updatedAt"] = now()
    user = db["user"].find_one_and_update(
        {"_id": to_obj_id(current_user["id"])}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    return {"success": True, "data": sanitize(user)}


@router.put("/updateuserpassword")
def update_user_password(
    payload: UpdatePasswordRequest,
    response: Response,
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    user = db["user"].find_one({"_id": to_obj_id(current_user["id"])})
    if not verify_password(payload.currentPassword, user.get("password", "")):
        raise HTTPException(status_code=401, detail="Password is incorrect")
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {"password": hash_password(payload.newPassword), "updatedAt": now()}},
    )
    return send_token_response(str(user["_id"]), response)
