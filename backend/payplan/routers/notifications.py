"""Manual notification dispatch endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from payplan.core.auth import require_job_api_key
from payplan.core.database import get_db
from payplan.schemas.notification import (
    DispatchRequest,
    DispatchResponse,
    RecipientResultResponse,
)
from payplan.services.job_orchestrator import default_dispatcher_factory
from payplan.services.notification_dispatcher import NotificationDispatcher

router = APIRouter()


def get_notification_dispatcher(db: Session = Depends(get_db)) -> NotificationDispatcher:
    return default_dispatcher_factory(db)


@router.post(
    "/dispatch",
    response_model=DispatchResponse,
    summary="Dispatch notifications for installments",
    responses={
        401: {"description": "Unauthorized – invalid or missing API key"},
        422: {"description": "Invalid installment IDs or event type"},
    },
)
async def dispatch_notifications(
    data: DispatchRequest,
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    _: str = Depends(require_job_api_key),
) -> DispatchResponse:
    """Send an event's notifications; recipients already notified are skipped."""
    result = await dispatcher.dispatch(data.installment_ids, data.event_type)
    return DispatchResponse(
        event_type=result.event_type,
        summary=result.summary(),
        results=[RecipientResultResponse.model_validate(r) for r in result.results],
    )
