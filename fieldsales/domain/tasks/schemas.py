"""Task domain schemas"""

from datetime import date
from typing import Optional

from pydantic import BaseModel

from ...schemas import TaskPriority


class TaskCreate(BaseModel):
    title: str
    due_date: Optional[date] = None  # defaults to today
    priority: TaskPriority = TaskPriority.MEDIUM
    related_client_id: Optional[str] = None


class UrgentTasksResponse(BaseModel):
    count: int
    task_ids: list[str]
