"""
Course schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ModuleSchema(BaseModel):
    """One curriculum module. Topic identifiers must be unique within it."""

    title: str = ""
    week: Optional[int] = None
    project: Optional[str] = None
    topics: List[str] = Field(default_factory=list)


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    curriculum: List[ModuleSchema] = Field(default_factory=list)
    published: bool = True


class CurriculumUpdate(BaseModel):
    curriculum: List[ModuleSchema]


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    slug: str
    curriculum: List[ModuleSchema]
    published: bool
    created_at: datetime
    updated_at: datetime
