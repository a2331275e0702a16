"""
Realtime Event Handlers
=======================

Handlers for client frames on the ``/ws`` socket, plus the connect and
disconnect presence hooks.

Each handler receives an :class:`EventContext` and the frame's ``data``
object. Failures are reported back to the sender as an ``error`` frame;
they never close the socket.

Version: 0.1.0
"""

import posixpath
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PayloadError
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.logging import get_logger
from services.marketplace.models import (
    BidModel,
    MessageAttachmentModel,
    MessageModel,
    MessageType,
    MilestoneModel,
    NotificationType,
    TaskModel,
    UserModel,
)
from services.marketplace.models.base import isoformat, utcnow
from services.marketplace.realtime.manager import Connection, ConnectionManager, task_room
from services.marketplace.realtime.notifications import NotificationService


logger = get_logger(__name__)


@dataclass
class EventContext:
    """Everything a handler may touch for one frame."""

    manager: ConnectionManager
    connection: Connection
    db: AsyncSession

    @property
    def user_id(self) -> str:
        return self.connection.user_id

    @property
    def notifications(self) -> NotificationService:
        return NotificationService(self.manager)

    async def reply(self, event: str, data: dict[str, Any]) -> None:
        await self.manager.send(self.connection, event, data)

    async def error(self, message: str) -> None:
        await self.reply("error", {"message": message})


Handler = Callable[[EventContext, dict[str, Any]], Awaitable[None]]


@dataclass(frozen=True)
class _Registration:
    handler: Handler
    failure_message: str


EVENT_HANDLERS: dict[str, _Registration] = {}


def on(event: str, failure_message: str) -> Callable[[Handler], Handler]:
    """Register a handler for a client event."""

    def decorator(func: Handler) -> Handler:
        EVENT_HANDLERS[event] = _Registration(func, failure_message)
        return func

    return decorator


# =============================================================================
# Payloads
# =============================================================================


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TaskRef(_Payload):
    task_id: str = Field(..., alias="taskId", min_length=1)


class MessageSend(TaskRef):
    content: str = Field(..., min_length=1, max_length=5000)
    type: MessageType = MessageType.TEXT
    attachments: list[str] = Field(default_factory=list)


class BidSubmitted(TaskRef):
    bid_id: str = Field(..., alias="bidId")


class BidAccepted(BidSubmitted):
    freelancer_id: str = Field(..., alias="freelancerId")


class PaymentReleased(TaskRef):
    payment_id: str = Field(..., alias="paymentId")
    freelancer_id: str = Field(..., alias="freelancerId")
    amount: float = Field(..., gt=0)


class MilestoneCompleted(TaskRef):
    milestone_id: str = Field(..., alias="milestoneId")
    client_id: str = Field(..., alias="clientId")


async def _participating_task(ctx: EventContext, task_id: str) -> TaskModel | None:
    """The task, if the caller is its client or assigned freelancer."""
    return await ctx.db.scalar(
        select(TaskModel).where(
            TaskModel.id == task_id,
            or_(TaskModel.client_id == ctx.user_id, TaskModel.freelancer_id == ctx.user_id),
        )
    )


def _format_amount(amount: float) -> str:
    return f"{amount:.0f}" if amount == int(amount) else f"{amount:.2f}"


# =============================================================================
# Task rooms
# =============================================================================


@on("task:join", failure_message="Failed to join task")
async def handle_task_join(ctx: EventContext, data: dict[str, Any]) -> None:
    payload = TaskRef.model_validate(data)
    if await _participating_task(ctx, payload.task_id) is None:
        await ctx.error("Access denied to task")
        return

    ctx.manager.join(ctx.connection, task_room(payload.task_id))
    await ctx.reply("task:joined", {"taskId": payload.task_id})


@on("task:leave", failure_message="Failed to leave task")
async def handle_task_leave(ctx: EventContext, data: dict[str, Any]) -> None:
    payload = TaskRef.model_validate(data)
    ctx.manager.leave(ctx.connection, task_room(payload.task_id))
    await ctx.reply("task:left", {"taskId": payload.task_id})


@on("message:send", failure_message="Failed to send message")
async def handle_message_send(ctx: EventContext, data: dict[str, Any]) -> None:
    payload = MessageSend.model_validate(data)
    task = await _participating_task(ctx, payload.task_id)
    if task is None:
        await ctx.error("Access denied to task")
        return

    sender = await ctx.db.get(UserModel, ctx.user_id)
    if sender is None:
        await ctx.error("User not found")
        return

    message = MessageModel(
        content=payload.content,
        type=payload.type,
        sender=sender,
        sender_id=ctx.user_id,
        task_id=task.id,
        attachments=[
            MessageAttachmentModel(filename=posixpath.basename(url) or url, url=url)
            for url in payload.attachments
        ],
    )
    ctx.db.add(message)
    await ctx.db.commit()

    await ctx.manager.emit_to_room(task_room(task.id), "message:received", message.to_dict())

    recipient_id = task.counterpart_of(ctx.user_id)
    if recipient_id:
        await ctx.notifications.notify(
            ctx.db,
            recipient_id,
            NotificationType.NEW_MESSAGE,
            title="New Message",
            message=f"{sender.first_name} sent you a message",
            details={"taskId": task.id, "messageId": message.id, "senderId": ctx.user_id},
            relay={"taskId": task.id, "messageId": message.id},
        )


async def _relay_typing(ctx: EventContext, data: dict[str, Any], event: str) -> None:
    payload = TaskRef.model_validate(data)
    room = task_room(payload.task_id)
    if room not in ctx.connection.rooms:
        return
    await ctx.manager.emit_to_room(
        room,
        event,
        {"userId": ctx.user_id, "taskId": payload.task_id},
        exclude=ctx.connection,
    )


@on("typing:start", failure_message="Failed to send typing indicator")
async def handle_typing_start(ctx: EventContext, data: dict[str, Any]) -> None:
    await _relay_typing(ctx, data, "typing:start")


@on("typing:stop", failure_message="Failed to send typing indicator")
async def handle_typing_stop(ctx: EventContext, data: dict[str, Any]) -> None:
    await _relay_typing(ctx, data, "typing:stop")


# =============================================================================
# Marketplace notifications
# =============================================================================


@on("bid:submit", failure_message="Failed to send bid notification")
async def handle_bid_submit(ctx: EventContext, data: dict[str, Any]) -> None:
    payload = BidSubmitted.model_validate(data)
    task = await ctx.db.get(TaskModel, payload.task_id)
    bid = await ctx.db.get(BidModel, payload.bid_id)
    if task is None or bid is None or bid.task_id != task.id or bid.freelancer_id != ctx.user_id:
        logger.info("bid_notification_skipped", task_id=payload.task_id, bid_id=payload.bid_id)
        return

    freelancer = await ctx.db.get(UserModel, bid.freelancer_id)
    if freelancer is None:
        return
    await ctx.notifications.notify(
        ctx.db,
        task.client_id,
        NotificationType.NEW_BID,
        title="New Bid Received",
        message=f"{freelancer.first_name} {freelancer.last_name} submitted a bid on your task",
        details={"taskId": task.id, "bidId": bid.id, "freelancerId": freelancer.id},
        relay={"taskId": task.id, "bidId": bid.id},
    )


@on("bid:accept", failure_message="Failed to send bid acceptance notification")
async def handle_bid_accept(ctx: EventContext, data: dict[str, Any]) -> None:
    payload = BidAccepted.model_validate(data)
    task = await ctx.db.get(TaskModel, payload.task_id)
    if task is None or task.client_id != ctx.user_id:
        logger.info("bid_acceptance_notification_skipped", task_id=payload.task_id)
        return

    await ctx.notifications.notify(
        ctx.db,
        payload.freelancer_id,
        NotificationType.BID_ACCEPTED,
        title="Bid Accepted!",
        message=f'Your bid on "{task.title}" has been accepted!',
        details={"taskId": task.id, "bidId": payload.bid_id, "clientId": ctx.user_id},
        relay={"taskId": task.id, "bidId": payload.bid_id},
    )


@on("payment:released", failure_message="Failed to send payment notification")
async def handle_payment_released(ctx: EventContext, data: dict[str, Any]) -> None:
    payload = PaymentReleased.model_validate(data)
    task = await ctx.db.get(TaskModel, payload.task_id)
    if task is None or task.client_id != ctx.user_id:
        logger.info("payment_notification_skipped", task_id=payload.task_id)
        return

    await ctx.notifications.notify(
        ctx.db,
        payload.freelancer_id,
        NotificationType.PAYMENT_RELEASED,
        title="Payment Released",
        message=f"Payment of ${_format_amount(payload.amount)} has been released to you",
        details={
            "taskId": task.id,
            "paymentId": payload.payment_id,
            "amount": payload.amount,
            "clientId": ctx.user_id,
        },
        relay={"taskId": task.id, "paymentId": payload.payment_id},
    )


@on("milestone:completed", failure_message="Failed to send milestone notification")
async def handle_milestone_completed(ctx: EventContext, data: dict[str, Any]) -> None:
    payload = MilestoneCompleted.model_validate(data)
    milestone = await ctx.db.get(MilestoneModel, payload.milestone_id)
    task = await _participating_task(ctx, payload.task_id)
    if milestone is None or task is None or milestone.task_id != task.id:
        logger.info("milestone_notification_skipped", milestone_id=payload.milestone_id)
        return

    await ctx.notifications.notify(
        ctx.db,
        payload.client_id,
        NotificationType.MILESTONE_COMPLETED,
        title="Milestone Completed",
        message=f'Milestone "{milestone.title}" has been completed',
        details={"taskId": task.id, "milestoneId": milestone.id, "freelancerId": ctx.user_id},
        relay={"taskId": task.id, "milestoneId": milestone.id},
    )


# =============================================================================
# Dispatch and presence
# =============================================================================


async def dispatch(ctx: EventContext, event: Any, data: Any) -> None:
    """Route one client frame to its handler."""
    registration = EVENT_HANDLERS.get(event) if isinstance(event, str) else None
    if registration is None:
        await ctx.error(f"Unknown event: {event}")
        return

    if not isinstance(data, dict):
        await ctx.error("Invalid payload")
        return

    try:
        await registration.handler(ctx, data)
    except PayloadError as e:
        logger.info("socket_payload_invalid", socket_event=event, errors=e.error_count())
        await ctx.error("Invalid payload")
    except SQLAlchemyError as e:
        await ctx.db.rollback()
        logger.error("socket_event_failed", socket_event=event, user_id=ctx.user_id, error=str(e))
        await ctx.error(registration.failure_message)


async def _set_presence(db: AsyncSession, user_id: str, online: bool) -> UserModel | None:
    user = await db.get(UserModel, user_id)
    if user is None:
        return None
    user.is_online = online
    user.last_seen = utcnow()
    await db.commit()
    return user


async def handle_connect(manager: ConnectionManager, connection: Connection, db: AsyncSession) -> None:
    """Register the socket, mark the user online and announce it."""
    first_session = not manager.is_online(connection.user_id)
    manager.register(connection)
    await _set_presence(db, connection.user_id, True)
    if first_session:
        await manager.broadcast(
            "user:online",
            {"userId": connection.user_id, "isOnline": True},
            exclude=connection,
        )


async def handle_disconnect(manager: ConnectionManager, connection: Connection, db: AsyncSession) -> None:
    """Drop the socket; the last socket of a user marks them offline."""
    manager.unregister(connection)
    if manager.is_online(connection.user_id):
        return

    user = await _set_presence(db, connection.user_id, False)
    await manager.broadcast(
        "user:offline",
        {
            "userId": connection.user_id,
            "isOnline": False,
            "lastSeen": isoformat(user.last_seen if user else utcnow()),
        },
    )
