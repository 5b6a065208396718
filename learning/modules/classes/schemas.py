import uuid
from pydantic import BaseModel, ConfigDict, Field

class ClassCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=140)
    description: str = Field(..., min_length=1, max_length=520)
    order: int = Field(..., ge=1)

class ClassUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=140)
    description: str | None = Field(None, min_length=1, max_length=520)
    order: int | None = Field(None, ge=1)

class ClassOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: str
    order: int
    file: str
    course_id: str
    creator: str
