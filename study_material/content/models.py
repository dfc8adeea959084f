from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from fastapi import HTTPException

from study_material.exception_handlers import format_errors

# ==================== ENUMS ====================


class Category(str, Enum):
    OOP = "OOP"
    DSA = "DSA"


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


# ==================== CONTENT MODELS ====================


def split_tags(raw: Optional[str]) -> List[str]:
    """'a, b,,c ' -> ['a', 'b', 'c']"""
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def parse_flag(raw) -> bool:
    return raw is True or raw == "true"


class ContentFields(BaseModel):
    """Validated content fields as they are stored in the contents collection"""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    title: str
    category: Category
    sub_topic: str = Field(alias="subTopic")
    content: str
    code_example: str = Field("", alias="codeExample")
    problem_statement: str = Field("", alias="problemStatement")
    solution: str = ""
    difficulty: Difficulty = Difficulty.EASY.value
    tags: List[str] = []
    enable_compiler: bool = Field(False, alias="enableCompiler")

    @field_validator("title", "sub_topic")
    @classmethod
    def strip_required(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("content")
    @classmethod
    def content_required(cls, v):
        if not v:
            raise ValueError("Content is required")
        return v

    @field_validator("category", mode="before")
    @classmethod
    def upper_category(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("difficulty", mode="before")
    @classmethod
    def default_difficulty(cls, v):
        return v or Difficulty.EASY.value

    @field_validator("code_example", "problem_statement", "solution", mode="before")
    @classmethod
    def none_to_blank(cls, v):
        return v or ""


def validate_content_fields(data: dict) -> dict:
    """Validate raw form fields, returning the document fields or raising a 400"""
    try:
        fields = ContentFields.model_validate(data)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=format_errors(e.errors()))
    return fields.model_dump(by_alias=True)
