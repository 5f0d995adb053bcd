from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..session import FieldSession, get_session

router = APIRouter(prefix="/notifications", tags=["Notifications"])


class ToastResponse(BaseModel):
    id: str
    message: str
    kind: str
    created_at: datetime


@router.get("", response_model=list[ToastResponse])
async def get_notifications(session: FieldSession = Depends(get_session)):
    """Toasts waiting to be shown: alerts, sync warnings, urgent task reminders"""
    return [
        ToastResponse(id=t.id, message=t.message, kind=t.kind, created_at=t.created_at)
        for t in session.notifications.list()
    ]


@router.delete("/{toast_id}")
async def dismiss_notification(toast_id: str, session: FieldSession = Depends(get_session)):
    if not session.notifications.dismiss(toast_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"message": "Notification dismissed"}
