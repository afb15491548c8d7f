from typing import List

from fastapi import APIRouter, HTTPException
from sqlalchemy import func, update
from sqlmodel import select

from db import SessionDep
from models import Notification
from schemas import NotificationRead
from .auth import UserRoleDep

router = APIRouter(tags=["notifications"])

FEED_LIMIT = 50


@router.get("/", response_model=List[NotificationRead])
def list_notifications(session: SessionDep, current: UserRoleDep):
    """
    The current user's latest notifications, newest first.
    """
    stmt = (
        select(Notification)
        .where(Notification.user_id == current["user"].id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(FEED_LIMIT)
    )
    return session.exec(stmt).all()


@router.get("/unread-count")
def unread_count(session: SessionDep, current: UserRoleDep):
    stmt = select(func.count(Notification.id)).where(
        Notification.user_id == current["user"].id,
        Notification.read == False,  # noqa: E712
    )
    return {"count": session.exec(stmt).one()}


@router.post("/read-all")
def mark_all_read(session: SessionDep, current: UserRoleDep):
    stmt = (
        update(Notification)
        .where(
            Notification.user_id == current["user"].id,
            Notification.read == False,  # noqa: E712
        )
        .values(read=True)
    )
    result = session.exec(stmt)
    session.commit()
    return {"updated": result.rowcount}


@router.post("/{notification_id}/read", response_model=NotificationRead)
def mark_read(notification_id: int, session: SessionDep, current: UserRoleDep):
    notification = session.get(Notification, notification_id)
    if notification is None or notification.user_id != current["user"].id:
        raise HTTPException(status_code=404, detail="Notification not found")
    notification.read = True
    session.add(notification)
    session.commit()
    session.refresh(notification)
    return notification
