"""
Factory Boy factories for messaging models.

Usage:
    from messaging.tests.factories import (
        ConversationFactory,
        GroupFactory,
        GroupMembershipFactory,
        MessageFactory,
    )

    conversation = ConversationFactory(participant_1=teacher, participant_2=student)
    group = GroupFactory(created_by=teacher)   # teacher is added as admin
    GroupMembershipFactory(group=group, user=student)
    MessageFactory(conversation=conversation, sender=teacher)
    MessageFactory(group=group, sender=student)
"""

import factory

from accounts.tests.factories import UserFactory
from messaging.models import (
    Conversation,
    Group,
    GroupMembership,
    GroupRole,
    Message,
    MessageType,
)


class ConversationFactory(factory.django.DjangoModelFactory):
    """
    Factory for Conversation.

    The pair is stored in canonical order whatever order it is passed in.
    """

    class Meta:
        model = Conversation

    participant_1 = factory.SubFactory(UserFactory, role="teacher")
    participant_2 = factory.SubFactory(UserFactory)
    last_message_at = None

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        first, second = kwargs["participant_1"], kwargs["participant_2"]
        if second.id < first.id:
            kwargs["participant_1"], kwargs["participant_2"] = second, first
        return super()._create(model_class, *args, **kwargs)


class GroupFactory(factory.django.DjangoModelFactory):
    """Factory for Group. The creator becomes the group admin."""

    class Meta:
        model = Group
        skip_postgeneration_save = True

    name = factory.Sequence(lambda n: f"Study Group {n}")
    description = ""
    created_by = factory.SubFactory(UserFactory, role="teacher")

    @factory.post_generation
    def creator_membership(self, create, extracted, **kwargs):
        if create and self.created_by is not None:
            GroupMembership.objects.get_or_create(
                group=self, user=self.created_by, defaults={"role": GroupRole.ADMIN}
            )


class GroupMembershipFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = GroupMembership

    group = factory.SubFactory(GroupFactory)
    user = factory.SubFactory(UserFactory)
    role = GroupRole.MEMBER


class MessageFactory(factory.django.DjangoModelFactory):
    """
    Factory for Message.

    Targets a conversation by default. Pass ``group=...`` with
    ``conversation=None`` for a group message; message_type follows the
    target.
    """

    class Meta:
        model = Message

    sender = factory.LazyAttribute(
        lambda obj: obj.conversation.participant_1
        if obj.conversation is not None
        else obj.group.created_by
    )
    content = factory.Faker("sentence")
    conversation = factory.SubFactory(ConversationFactory)
    group = None
    message_type = factory.LazyAttribute(
        lambda obj: MessageType.GROUP if obj.group is not None else MessageType.CONVERSATION
    )
