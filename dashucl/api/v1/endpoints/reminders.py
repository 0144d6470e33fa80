from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from dashucl.api.deps import get_reminder_coordinator, get_reminder_scheduler
from dashucl.core.responses import success_response
from dashucl.schemas.reminder import PendingReminderRead, RescheduleRead
from dashucl.services.reminders import ReminderCoordinator, ReminderScheduler

router = APIRouter(prefix="/reminders", tags=["Reminders"])


@router.get("")
async def list_pending_reminders(request: Request, scheduler: ReminderScheduler = Depends(get_reminder_scheduler)):
    items = await scheduler.pending()
    data = [PendingReminderRead.model_validate(item).model_dump(mode="json") for item in items]
    return success_response(data=data, request=request)


@router.post("/reschedule")
async def reschedule_reminders(
    request: Request,
    coordinator: ReminderCoordinator = Depends(get_reminder_coordinator),
):
    result = await coordinator.sync()
    return success_response(data=RescheduleRead(**result.as_dict()).model_dump(), request=request)


@router.delete("")
async def cancel_reminders(request: Request, scheduler: ReminderScheduler = Depends(get_reminder_scheduler)):
    cancelled = await scheduler.cancel_all()
    return success_response(data={"cancelled": cancelled}, request=request)
