"""
Tests for messaging models and their database constraints.

Covers:
- Canonical, unique conversation pairs
- Message single-target constraint and clean()
- One read receipt per (message, user)
"""

import pytest
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from accounts.tests.factories import UserFactory
from messaging.models import Conversation, Message, MessageRead, MessageType
from messaging.tests.factories import ConversationFactory, GroupFactory, MessageFactory


class TestConversation:
    def test_factory_stores_canonical_order(self, teacher, student):
        conversation = ConversationFactory(participant_1=teacher, participant_2=student)

        assert conversation.participant_1_id < conversation.participant_2_id

    def test_non_canonical_order_is_rejected(self, teacher, student):
        """
        Why it matters: the pair ordering is what makes (A, B) and (B, A)
        the same row.
        """
        low, high = sorted([teacher, student], key=lambda user: user.id)

        with pytest.raises(IntegrityError), transaction.atomic():
            Conversation.objects.create(participant_1=high, participant_2=low)

    def test_duplicate_pair_is_rejected(self, teacher, student):
        ConversationFactory(participant_1=teacher, participant_2=student)
        low, high = sorted([teacher, student], key=lambda user: user.id)

        with pytest.raises(IntegrityError), transaction.atomic():
            Conversation.objects.create(participant_1=low, participant_2=high)

    def test_other_participant(self, teacher, student):
        conversation = ConversationFactory(participant_1=teacher, participant_2=student)

        assert conversation.other_participant(teacher) == student
        assert conversation.other_participant(student) == teacher
        assert conversation.has_participant(teacher)
        assert not conversation.has_participant(UserFactory())


class TestMessageTarget:
    def test_both_targets_rejected_by_clean(self, teacher, student):
        conversation = ConversationFactory(participant_1=teacher, participant_2=student)
        group = GroupFactory(created_by=teacher)
        message = Message(
            sender=teacher,
            content="hi",
            message_type=MessageType.CONVERSATION,
            conversation=conversation,
            group=group,
        )

        with pytest.raises(ValidationError):
            message.clean()

    def test_no_target_rejected_by_clean(self, teacher):
        message = Message(sender=teacher, content="hi", message_type=MessageType.CONVERSATION)

        with pytest.raises(ValidationError):
            message.clean()

    def test_type_must_match_target(self, teacher):
        group = GroupFactory(created_by=teacher)
        message = Message(
            sender=teacher, content="hi", message_type=MessageType.CONVERSATION, group=group
        )

        with pytest.raises(ValidationError):
            message.clean()

    def test_both_targets_rejected_by_database(self, teacher, student):
        """
        Why it matters: writes that bypass the service still cannot create
        a message in two places.
        """
        conversation = ConversationFactory(participant_1=teacher, participant_2=student)
        group = GroupFactory(created_by=teacher)

        with pytest.raises(IntegrityError), transaction.atomic():
            Message.objects.create(
                sender=teacher,
                content="hi",
                message_type=MessageType.CONVERSATION,
                conversation=conversation,
                group=group,
            )

    def test_no_target_rejected_by_database(self, teacher):
        with pytest.raises(IntegrityError), transaction.atomic():
            Message.objects.create(
                sender=teacher, content="hi", message_type=MessageType.GROUP
            )

    def test_scope_id(self, teacher):
        group = GroupFactory(created_by=teacher)
        message = MessageFactory(group=group, conversation=None, sender=teacher)

        assert message.scope_id == group.id
        assert message.message_type == MessageType.GROUP


class TestMessageRead:
    def test_one_receipt_per_user(self, teacher, student):
        message = MessageFactory(
            conversation=ConversationFactory(participant_1=teacher, participant_2=student),
            sender=teacher,
        )
        MessageRead.objects.create(message=message, user=student)

        with pytest.raises(IntegrityError), transaction.atomic():
            MessageRead.objects.create(message=message, user=student)
