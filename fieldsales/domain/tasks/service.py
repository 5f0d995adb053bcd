"""Task service - add/toggle/delete, no invariants beyond existence"""

import logging

from ...clock import Clock
from ...errors import NotFoundError, ValidationError
from ...schemas import Task, TaskPriority
from ...services.sync_service import EntityKind, MutationResult, SyncDispatcher
from ...store import EntityStore
from .schemas import TaskCreate

logger = logging.getLogger(__name__)


class TaskService:
    def __init__(self, store: EntityStore, clock: Clock, sync: SyncDispatcher):
        self.store = store
        self.clock = clock
        self.sync = sync

    def get_tasks(self) -> list[Task]:
        """Tasks by due date, open tasks first within a day"""
        return sorted(self.store.tasks.all(), key=lambda t: (t.due_date, t.completed))

    def get_task(self, task_id: str) -> Task:
        task = self.store.tasks.get(task_id)
        if not task:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    def add_task(self, data: TaskCreate) -> MutationResult[Task]:
        title = (data.title or "").strip()
        if not title:
            raise ValidationError("Task title is required")

        task = Task(
            title=title,
            due_date=data.due_date or self.clock.now().date(),
            priority=data.priority,
            related_client_id=data.related_client_id,
        )
        with self.store.atomic():
            self.store.tasks.insert(task)
            receipts = [self.sync.create(EntityKind.TASK, task)]

        logger.info(f"✅ Task {task.id} created: {task.title}")
        return MutationResult(task, receipts)

    def toggle_task(self, task_id: str) -> MutationResult[Task]:
        with self.store.atomic():
            task = self.get_task(task_id)
            task = task.model_copy(update={"completed": not task.completed})
            self.store.tasks.replace(task)
            receipts = [self.sync.update(EntityKind.TASK, task)]
        return MutationResult(task, receipts)

    def delete_task(self, task_id: str) -> MutationResult[Task]:
        with self.store.atomic():
            task = self.get_task(task_id)
            self.store.tasks.delete(task_id)
            receipts = [self.sync.delete(EntityKind.TASK, task_id)]

        logger.info(f"🗑️ Task {task_id} deleted")
        return MutationResult(task, receipts)

    def urgent_tasks_due_today(self) -> list[Task]:
        """Open high priority tasks due today"""
        today = self.clock.now().date()
        return [
            task
            for task in self.store.tasks.all()
            if task.due_date == today and task.priority == TaskPriority.HIGH and not task.completed
        ]
