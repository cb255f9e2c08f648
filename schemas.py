"""
Database Schemas for the school website CMS

Each collection model represents a MongoDB collection. The collection name is
the lowercase of the class name (e.g., News -> "news"). Field names are the
document keys as stored and as sent over the wire.

The *Request / *Create / *Update models below describe request bodies.
"""

from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, EmailStr, Field, field_validator

Role = Literal["student", "teacher", "admin", "superadmin"]
Category = Literal["general", "academic", "sports", "events", "achievements"]

DEFAULT_SETTINGS = {
    "schoolName": "Bright Minds Academy",
    "email": "info@brightminds.edu",
    "phone": "(555) 123-4567",
    "address": "123 Education Lane\nAcademic City, AC 12345",
    "website": "https://brightminds.edu",
}


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _clean_tags(tags: List[str]) -> List[str]:
    return [t.strip() for t in tags if t and t.strip()]


UtcDatetime = Annotated[datetime, AfterValidator(_naive_utc)]
Tags = Annotated[List[str], AfterValidator(_clean_tags)]


# Collections

class User(BaseModel):
    """
    Accounts of students, teachers and administrators
    Collection: "user"
    """
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address, unique")
    password: str = Field(..., description="Bcrypt hashed password")
    role: Role = Field("student", description="Role in the system")
    department: Optional[str] = None
    mustChangePassword: bool = Field(False, description="Set on accounts created with the default password")


class News(BaseModel):
    """
    News articles shown on the public site
    Collection: "news"
    """
    title: str
    content: str
    author: str = Field(..., description="ObjectId of the authoring user")
    imageUrl: str = ""
    category: Category = "general"
    isPublished: bool = False
    publishedAt: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)


class Event(BaseModel):
    """
    School calendar events
    Collection: "event"
    """
    title: str
    description: Optional[str] = None
    date: datetime
    time: Optional[str] = None
    location: Optional[str] = None
    createdBy: str = Field(..., description="ObjectId of the creating user")


class Setting(BaseModel):
    """
    Site-wide settings, a single document
    Collection: "setting"
    """
    schoolName: str = DEFAULT_SETTINGS["schoolName"]
    email: str = DEFAULT_SETTINGS["email"]
    phone: str = DEFAULT_SETTINGS["phone"]
    address: str = DEFAULT_SETTINGS["address"]
    website: str = DEFAULT_SETTINGS["website"]
    updatedBy: Optional[str] = None


# Auth

class Identity(BaseModel):
    id: str
    role: Role


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)
    role: Role = "student"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class PasswordChange(BaseModel):
    currentPassword: str
    newPassword: str = Field(..., min_length=6)


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    role: Role = "student"
    department: Optional[str] = None


# Content

class NewsCreate(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    category: Category = "general"
    tags: Tags = Field(default_factory=list)
    imageUrl: str = ""

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip()


class NewsUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    category: Optional[Category] = None
    tags: Optional[Tags] = None
    imageUrl: Optional[str] = None
    isPublished: Optional[bool] = None


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    date: UtcDatetime
    time: Optional[str] = None
    location: Optional[str] = None


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    date: Optional[UtcDatetime] = None
    time: Optional[str] = None
    location: Optional[str] = None


class SettingsUpdate(BaseModel):
    schoolName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None


def changed_fields(payload: BaseModel) -> dict:
    """Fields the client actually sent, minus explicit nulls."""
    return {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
