"""
Notification Routes

GET /notifications/unsubscribe?token=&email= - One-click unsubscribe link target
POST /notifications/unsubscribe - Same, as JSON
POST /notifications/resubscribe - Opt back in (own email, or admin)
GET /notifications/email-stats/{job_id} - Delivery counts for a job's emails
PUT /notifications/email/{notification_id}/status - Delivery report (admin)
GET /notifications/email/{notification_id}/render - Rendered email (admin)
GET /notifications - My in-app notifications
POST /notifications - Create an in-app notification (admin)
GET /notifications/unread-count - How many of mine are unread
PUT /notifications/read-all - Mark all of mine as read
PUT /notifications/{notification_id}/read - Mark as read
"""

from fastapi import APIRouter, HTTPException, Depends, Query

from placement_portal.core.auth import get_current_user, require_roles
from placement_portal.services.notification_service import (
    get_email_notification_service, get_notification_service
)
from placement_portal.schemas.schemas import (
    UnsubscribeRequest, ResubscribeRequest, EmailStatusUpdate, NotificationCreate, MessageResponse
)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/unsubscribe", response_model=MessageResponse)
async def unsubscribe_link(token: str = Query(...), email: str = Query(...)):
    """No login needed: the signed token is the credential."""
    result = get_email_notification_service().unsubscribe_user(email, token)
    return MessageResponse(**result)


@router.post("/unsubscribe", response_model=MessageResponse)
async def unsubscribe(request: UnsubscribeRequest):
    result = get_email_notification_service().unsubscribe_user(request.email, request.token)
    return MessageResponse(**result)


@router.post("/resubscribe", response_model=MessageResponse)
async def resubscribe(request: ResubscribeRequest, user: dict = Depends(get_current_user)):
    if user["role"] != "admin" and request.email.lower() != user["email"].lower():
        raise HTTPException(status_code=403, detail="You can only re-subscribe your own email")
    result = get_email_notification_service().resubscribe_user(request.email)
    return MessageResponse(**result)


@router.get("/email-stats/{job_id}", dependencies=[Depends(require_roles("recruiter", "admin"))])
async def email_stats(job_id: str):
    return get_email_notification_service().get_email_notification_stats(job_id)


@router.put(
    "/email/{notification_id}/status",
    response_model=MessageResponse,
    dependencies=[Depends(require_roles("admin"))]
)
async def update_email_status(notification_id: str, data: EmailStatusUpdate):
    get_email_notification_service().update_email_notification_status(
        notification_id, data.status, data.metadata
    )
    return MessageResponse(message=f"Email notification marked {data.status}")


@router.get("/email/{notification_id}/render", dependencies=[Depends(require_roles("admin"))])
async def render_email(notification_id: str):
    return get_email_notification_service().render_notification(notification_id)


@router.get("")
async def my_notifications(limit: int = Query(50, ge=1, le=200), user: dict = Depends(get_current_user)):
    return get_notification_service().list_notifications_for_user(user["user_id"], limit)


@router.post("", status_code=201, dependencies=[Depends(require_roles("admin"))])
async def create_notification(data: NotificationCreate):
    notification_id = get_notification_service().create_notification(
        data.user_id, data.title, data.body, data.data
    )
    return {"id": notification_id}


@router.get("/unread-count")
async def unread_count(user: dict = Depends(get_current_user)):
    return {"unread": get_notification_service().unread_count(user["user_id"])}


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_read(user: dict = Depends(get_current_user)):
    count = get_notification_service().mark_all_read(user["user_id"])
    return MessageResponse(message=f"{count} notifications marked as read")


@router.put("/{notification_id}/read", response_model=MessageResponse)
async def mark_read(notification_id: str, user: dict = Depends(get_current_user)):
    get_notification_service().mark_read(notification_id, user["user_id"])
    return MessageResponse(message="Notification marked as read")
