"""
Change feed.

Mirrors writes to Message, Conversation and User onto the realtime channel
as ``*_change`` events, for clients that keep a local copy of these
documents. Every event has the shape ``{operation, document}`` where
operation is insert, update or delete.

Audiences:
    message_change: the message's conversation or group room
    conversation_change: both participants' user rooms
    user_change: every connected socket, public profile fields only

Documents are built when the signal fires and published after the
surrounding transaction commits, so a rolled-back write emits nothing.
Writes made with QuerySet.update() (presence, last_message_at, is_read)
send no model signals and are not mirrored here; they have their own
events.

Handlers are connected by importing this module in RealtimeConfig.ready().
"""

import logging

from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from accounts.models import User
from messaging.models import Conversation, Message
from messaging.services import message_payload, message_scope
from realtime.broadcaster import Scope, get_broadcaster, publish_safely
from realtime.constants import EVENTS

logger = logging.getLogger(__name__)


class OPERATIONS:
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


def _operation(created: bool) -> str:
    return OPERATIONS.INSERT if created else OPERATIONS.UPDATE


def publish_after_commit(event: str, scopes: list[Scope], operation: str, document: dict) -> None:
    """Publish ``{operation, document}`` to each scope once the transaction commits."""
    payload = {"operation": operation, "document": document}

    def publish():
        broadcaster = get_broadcaster()
        for scope in scopes:
            publish_safely(broadcaster, event, scope, payload)

    transaction.on_commit(publish)


def conversation_document(conversation: Conversation) -> dict:
    return {
        "id": str(conversation.id),
        "participant_1_id": str(conversation.participant_1_id),
        "participant_2_id": str(conversation.participant_2_id),
        "last_message_at": (
            conversation.last_message_at.isoformat() if conversation.last_message_at else None
        ),
        "created_at": conversation.created_at.isoformat(),
    }


def conversation_scopes(conversation: Conversation) -> list[Scope]:
    return [Scope.user(user_id) for user_id in conversation.participant_ids]


# =============================================================================
# Messages
# =============================================================================


@receiver(post_save, sender=Message)
def message_saved(sender, instance, created, raw=False, **kwargs):
    if raw:
        return
    publish_after_commit(
        EVENTS.MESSAGE_CHANGE,
        [message_scope(instance)],
        _operation(created),
        message_payload(instance),
    )


@receiver(post_delete, sender=Message)
def message_deleted(sender, instance, **kwargs):
    document = {
        "id": str(instance.id),
        "message_type": instance.message_type,
        "conversation_id": str(instance.conversation_id) if instance.conversation_id else None,
        "group_id": str(instance.group_id) if instance.group_id else None,
    }
    publish_after_commit(
        EVENTS.MESSAGE_CHANGE,
        [message_scope(instance)],
        OPERATIONS.DELETE,
        document,
    )


# =============================================================================
# Conversations
# =============================================================================


@receiver(post_save, sender=Conversation)
def conversation_saved(sender, instance, created, raw=False, **kwargs):
    if raw:
        return
    publish_after_commit(
        EVENTS.CONVERSATION_CHANGE,
        conversation_scopes(instance),
        _operation(created),
        conversation_document(instance),
    )


@receiver(post_delete, sender=Conversation)
def conversation_deleted(sender, instance, **kwargs):
    publish_after_commit(
        EVENTS.CONVERSATION_CHANGE,
        conversation_scopes(instance),
        OPERATIONS.DELETE,
        {"id": str(instance.id)},
    )


# =============================================================================
# Users
# =============================================================================


@receiver(post_save, sender=User)
def user_saved(sender, instance, created, raw=False, **kwargs):
    if raw:
        return
    update_fields = kwargs.get("update_fields")
    if update_fields and set(update_fields) <= {"last_login"}:
        # Login bookkeeping, nothing public changed
        return
    publish_after_commit(
        EVENTS.USER_CHANGE,
        [Scope.all_users()],
        _operation(created),
        instance.public_profile(),
    )


@receiver(post_delete, sender=User)
def user_deleted(sender, instance, **kwargs):
    logger.debug(f"User {instance.id} deleted, publishing user_change")
    publish_after_commit(
        EVENTS.USER_CHANGE,
        [Scope.all_users()],
        OPERATIONS.DELETE,
        {"id": str(instance.id)},
    )
