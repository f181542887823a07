from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, field_validator
import uuid

TITLE_MAX_LENGTH = 140


def is_blank(title: str | None) -> bool:
    return title is None or not title.strip()


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)

    @field_validator("title")
    @classmethod
    def _reject_blank(cls, v: str) -> str:
        # stored as entered; whitespace-only never reaches the store
        if is_blank(v):
            raise ValueError("title must not be blank")
        return v


class TaskRename(TaskCreate):
    pass


class Task(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str

    def renamed(self, title: str) -> Task:
        return self.model_copy(update={"title": title})


def new_task_id() -> str:
    return str(uuid.uuid4())
