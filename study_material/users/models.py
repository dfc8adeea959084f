import re
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ==================== ENUMS ====================


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class BlockType(str, Enum):
    USERNAME = "username"
    EMAIL = "email"
    PATTERN = "pattern"


EMAIL_PATTERN = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")

# ==================== AUTH MODELS ====================


class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters")
        if len(v) > 30:
            raise ValueError("Username cannot be longer than 30 characters")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Please enter a valid email")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


# ==================== ADMIN MODELS ====================


class AdminLoginRequest(BaseModel):
    email: str
    password: str


class RejectRequest(BaseModel):
    reason: Optional[str] = None


class BlockRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reason: str = ""
    block_email: bool = Field(True, alias="blockEmail")
    block_username: bool = Field(True, alias="blockUsername")
    patterns: List[str] = []
