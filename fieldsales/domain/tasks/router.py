"""Task router - FastAPI endpoints for the task list"""

from fastapi import APIRouter, Depends

from ...schemas import Task
from ...services.sync_service import MutationResponse
from ...session import FieldSession, get_session
from .schemas import TaskCreate, UrgentTasksResponse
from .service import TaskService

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def get_task_service(session: FieldSession = Depends(get_session)) -> TaskService:
    """Dependency injection for TaskService"""
    return session.tasks


@router.get("", response_model=list[Task])
async def get_tasks(service: TaskService = Depends(get_task_service)):
    return service.get_tasks()


@router.get("/urgent", response_model=UrgentTasksResponse)
async def get_urgent_tasks(service: TaskService = Depends(get_task_service)):
    """Open high priority tasks due today"""
    urgent = service.urgent_tasks_due_today()
    return UrgentTasksResponse(count=len(urgent), task_ids=[t.id for t in urgent])


@router.post("", response_model=MutationResponse[Task], status_code=201)
async def add_task(data: TaskCreate, service: TaskService = Depends(get_task_service)):
    return MutationResponse[Task].from_result(service.add_task(data))


@router.post("/{task_id}/toggle", response_model=MutationResponse[Task])
async def toggle_task(task_id: str, service: TaskService = Depends(get_task_service)):
    return MutationResponse[Task].from_result(service.toggle_task(task_id))


@router.delete("/{task_id}", response_model=MutationResponse[Task])
async def delete_task(
    task_id: str,
    service: TaskService = Depends(get_task_service),
    session: FieldSession = Depends(get_session),
):
    result = service.delete_task(task_id)
    session.notifications.push("Task removed.", "info")
    return MutationResponse[Task].from_result(result)
