from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from app.schemas.common import Identifier

class CourseModuleIn(BaseModel):
    id: Optional[Identifier] = None
    title: str = Field(..., min_length=1)

class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1)
    code: Optional[str] = None
    instructorId: Optional[Identifier] = None
    modules: List[CourseModuleIn] = []

class CourseModuleResponse(BaseModel):
    id: str
    title: str

class CourseResponse(BaseModel):
    id: str
    title: str
    code: Optional[str] = None
    instructorId: Optional[str] = None
    modules: List[CourseModuleResponse] = []
    createdAt: Optional[datetime] = None
