"""
Shared endpoint dependencies.

The presence registry and real-time publisher are created by the
application factory and stored on ``app.state``; endpoints reach them
through these dependencies so tests can override them.
"""
from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from entreprenapp.db.mongodb import get_database
from entreprenapp.realtime.presence import PresenceRegistry
from entreprenapp.realtime.publisher import RealtimePublisher
from entreprenapp.services.email import EmailService
from entreprenapp.services.notifications import NotificationService


def get_presence(request: Request) -> PresenceRegistry:
    return request.app.state.presence


def get_publisher(request: Request) -> RealtimePublisher:
    return request.app.state.publisher


def get_notification_service(
    db: AsyncIOMotorDatabase = Depends(get_database),
    publisher: RealtimePublisher = Depends(get_publisher),
) -> NotificationService:
    return NotificationService(db, publisher)


def get_email_service() -> EmailService:
    return EmailService()
