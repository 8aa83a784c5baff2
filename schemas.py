"""
Database Schemas for the Bootcamp Directory

MongoDB collections are defined below using Pydantic models. Each class name is
converted to lowercase for the collection name (Bootcamp -> "bootcamp").

We will use these collections:
- bootcamp: bootcamps listed in the directory
- course: courses offered by a bootcamp
- review: user reviews of a bootcamp
- user: accounts (user, publisher, admin)

Field names are camelCase because they are also the names API clients filter
and sort on. References to other documents are stored as id strings.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

Role = Literal["user", "publisher", "admin"]
Skill = Literal["beginner", "intermediate", "advanced"]
Career = Literal[
    "Web Development",
    "Mobile Development",
    "UI/UX",
    "Database Development",
    "Information Security",
    "Systems and Networking",
    "Data Science",
    "Business",
    "Marketing",
    "Other",
]

URL_PATTERN = r"^https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)$"


class Location(BaseModel):
    """GeoJSON point plus the structured address the geocoder resolved."""
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(..., min_length=2, max_length=2, description="[longitude, latitude]")
    formattedAddress: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country: Optional[str] = None


class Bootcamp(BaseModel):
    name: str = Field(..., min_length=1, max_length=70)
    slug: str
    description: str = Field(..., min_length=1, max_length=500)
    website: Optional[str] = Field(None, pattern=URL_PATTERN)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    location: Location
    careers: List[Career] = Field(..., min_length=1)
    averageRating: Optional[float] = Field(None, ge=1, le=10)
    averageCost: Optional[float] = None
    photo: str = ""
    housing: bool = False
    jobAssistance: bool = False
    jobGuarantee: bool = False
    acceptGi: bool = False
    user: str = Field(..., description="Reference to user _id (owner)")
    deleted: bool = False


class Course(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    weeks: int = Field(..., ge=1)
    tuition: float = Field(..., ge=0)
    minimumSkill: Skill
    scholarshipAvailable: bool = False
    bootcamp: str = Field(..., description="Reference to bootcamp _id")
    user: str = Field(..., description="Reference to user _id (owner)")
    deleted: bool = False


class Review(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    text: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=10)
    bootcamp: str = Field(..., description="Reference to bootcamp _id")
    user: str = Field(..., description="Reference to user _id (author)")
    deleted: bool = False


class User(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    role: Role = "user"
    password: str = Field(..., description="BCrypt hash of password")
    active: bool = True
    profilePic: str = "Your profile picture"
    bio: str = "Your bio"
    twitterURL: str = "https://www.twitter.com/twitter"
    githubURL: str = "https://www.github.com/github"
    facebookURL: str = "https://www.facebook.com/facebook"
    instagramURL: str = "https://www.instagram.com/instagram"
    resetPasswordToken: Optional[str] = None
    resetPasswordExpire: Optional[datetime] = None
