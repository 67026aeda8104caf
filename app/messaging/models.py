"""
Messaging models.

Models:
    Conversation: One-to-one conversation between a canonical user pair
    Group: Named group chat
    GroupMembership: A user's membership in a group (admin or member)
    Message: A message in exactly one conversation or one group
    MessageRead: Read receipt, one per (message, user)

Invariants enforced by the database:
    - A conversation stores its pair with participant_1 < participant_2 and
      the pair is unique, so (A, B) and (B, A) resolve to the same row
    - A message targets exactly one of conversation/group, matching its
      message_type
    - A user has at most one read receipt per message

Deleting a conversation or group deletes its messages. Deleting a user
deletes the messages they sent and the conversations they were part of.
"""

from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from core.models import BaseModel, UUIDPrimaryKeyMixin

from messaging.constants import GROUP_CONFIG, MESSAGE_CONFIG


class MessageType(models.TextChoices):
    CONVERSATION = "conversation", "Conversation"
    GROUP = "group", "Group"


class GroupRole(models.TextChoices):
    ADMIN = "admin", "Admin"
    MEMBER = "member", "Member"


class Conversation(UUIDPrimaryKeyMixin, BaseModel):
    """
    One-to-one conversation.

    Create through ConversationService.get_or_create, which orders the pair
    canonically and resolves concurrent creation.

    Fields:
        participant_1: Participant with the lower id
        participant_2: Participant with the higher id
        last_message_at: Time of the newest message; never moves backwards
    """

    participant_1 = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="conversations_as_first",
    )
    participant_2 = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="conversations_as_second",
    )
    last_message_at = models.DateTimeField(null=True, blank=True, db_index=True)

    class Meta:
        db_table = "messaging_conversation"
        ordering = [F("last_message_at").desc(nulls_last=True), "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["participant_1", "participant_2"],
                name="unique_conversation_pair",
            ),
            models.CheckConstraint(
                condition=Q(participant_1__lt=F("participant_2")),
                name="conversation_canonical_order",
            ),
        ]

    def __str__(self):
        return f"Conversation({self.participant_1_id}, {self.participant_2_id})"

    @property
    def participant_ids(self) -> tuple:
        return (self.participant_1_id, self.participant_2_id)

    def has_participant(self, user) -> bool:
        return user.id in self.participant_ids

    def other_participant(self, user):
        """The participant that is not ``user``."""
        return self.participant_2 if self.participant_1_id == user.id else self.participant_1


class Group(UUIDPrimaryKeyMixin, BaseModel):
    """Named group chat. Members are GroupMembership rows."""

    name = models.CharField(max_length=GROUP_CONFIG.MAX_NAME_LENGTH)
    description = models.TextField(
        max_length=GROUP_CONFIG.MAX_DESCRIPTION_LENGTH, blank=True, default=""
    )
    avatar_url = models.URLField(max_length=500, blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_groups",
    )
    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through="GroupMembership",
        related_name="chat_groups",
    )

    class Meta:
        db_table = "messaging_group"
        ordering = ["name"]

    def __str__(self):
        return self.name


class GroupMembership(UUIDPrimaryKeyMixin, BaseModel):
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name="memberships")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="group_memberships",
    )
    role = models.CharField(max_length=10, choices=GroupRole.choices, default=GroupRole.MEMBER)
    joined_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "messaging_group_membership"
        ordering = ["joined_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["group", "user"],
                name="unique_group_membership",
            ),
        ]

    def __str__(self):
        return f"{self.user_id} in {self.group_id} ({self.role})"


class Message(UUIDPrimaryKeyMixin, BaseModel):
    """
    A chat message.

    Fields:
        sender: Author
        content: Text, 1..MAX_CONTENT_LENGTH characters
        message_type: conversation or group
        conversation: Set iff message_type is conversation
        group: Set iff message_type is group
        is_read: For conversation messages, every participant other than
            the sender has a read receipt
    """

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
    )
    content = models.TextField(max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH)
    message_type = models.CharField(max_length=20, choices=MessageType.choices)
    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="messages",
    )
    group = models.ForeignKey(
        Group,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="messages",
    )
    is_read = models.BooleanField(default=False)

    class Meta:
        db_table = "messaging_message"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["sender", "created_at"], name="message_sender_created_idx"),
            models.Index(fields=["conversation", "created_at"], name="message_conv_created_idx"),
            models.Index(fields=["group", "created_at"], name="message_group_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(
                        message_type=MessageType.CONVERSATION,
                        conversation__isnull=False,
                        group__isnull=True,
                    )
                    | Q(
                        message_type=MessageType.GROUP,
                        group__isnull=False,
                        conversation__isnull=True,
                    )
                ),
                name="message_single_target",
            ),
        ]

    def __str__(self):
        return f"Message {self.id} from {self.sender_id}"

    def clean(self):
        super().clean()
        has_conversation = self.conversation_id is not None
        has_group = self.group_id is not None
        if has_conversation and has_group:
            raise ValidationError("A message cannot target both a conversation and a group.")
        if not has_conversation and not has_group:
            raise ValidationError("A message needs a conversation or a group.")
        expected = MessageType.CONVERSATION if has_conversation else MessageType.GROUP
        if self.message_type != expected:
            raise ValidationError({"message_type": f"Must be {expected} for this target."})

    @property
    def scope_id(self):
        return self.conversation_id or self.group_id


class MessageRead(UUIDPrimaryKeyMixin, models.Model):
    """Read receipt. Append-only: never updated after creation."""

    message = models.ForeignKey(Message, on_delete=models.CASCADE, related_name="reads")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="message_reads",
    )
    read_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "messaging_message_read"
        ordering = ["read_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["message", "user"],
                name="unique_message_read",
            ),
        ]

    def __str__(self):
        return f"{self.user_id} read {self.message_id}"
