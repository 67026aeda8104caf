"""
Tests for the change feed.

Model writes are mirrored as ``*_change`` events after commit. The
on_commit callbacks are executed explicitly with
django_capture_on_commit_callbacks, since the test transaction never
commits.
"""

from accounts.models import User
from accounts.tests.factories import UserFactory
from messaging.models import Conversation, Message
from messaging.services import MessageService, MessageTarget
from messaging.tests.factories import ConversationFactory, GroupFactory
from realtime.constants import ALL_USERS_GROUP, EVENTS


class TestMessageChanges:
    def test_send_mirrors_insert_to_conversation_room(
        self, teacher, student, broadcaster, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            message = MessageService.send_message(
                teacher, "hi", MessageTarget.to_user(student.id)
            ).data

        [(_, scope, payload)] = broadcaster.events(EVENTS.MESSAGE_CHANGE)
        assert scope.group_name == f"conversation_{message.conversation_id}"
        assert payload["operation"] == "insert"
        assert payload["document"]["id"] == str(message.id)
        assert payload["document"]["content"] == "hi"

    def test_delete_mirrors_to_group_room(
        self, teacher, broadcaster, django_capture_on_commit_callbacks
    ):
        group = GroupFactory(created_by=teacher)
        message = MessageService.send_message(teacher, "hi", MessageTarget.to_group(group.id)).data
        broadcaster.reset()

        with django_capture_on_commit_callbacks(execute=True):
            MessageService.delete_message(message, teacher)

        [(_, scope, payload)] = broadcaster.events(EVENTS.MESSAGE_CHANGE)
        assert scope.group_name == f"group_{group.id}"
        assert payload == {
            "operation": "delete",
            "document": {
                "id": str(message.id),
                "message_type": "group",
                "conversation_id": None,
                "group_id": str(group.id),
            },
        }

    def test_nothing_published_before_commit(self, teacher, student, broadcaster):
        MessageService.send_message(teacher, "hi", MessageTarget.to_user(student.id))

        assert broadcaster.events(EVENTS.MESSAGE_CHANGE) == []


class TestConversationChanges:
    def test_insert_goes_to_both_participants(
        self, teacher, student, broadcaster, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            conversation = ConversationFactory(participant_1=teacher, participant_2=student)

        events = broadcaster.events(EVENTS.CONVERSATION_CHANGE)
        assert {scope.group_name for _, scope, _ in events} == {
            f"user_{teacher.id}",
            f"user_{student.id}",
        }
        payload = events[0][2]
        assert payload["operation"] == "insert"
        assert payload["document"]["id"] == str(conversation.id)
        assert payload["document"]["last_message_at"] is None

    def test_delete(self, teacher, student, broadcaster, django_capture_on_commit_callbacks):
        conversation = ConversationFactory(participant_1=teacher, participant_2=student)
        conversation_id = conversation.id

        with django_capture_on_commit_callbacks(execute=True):
            Conversation.objects.get(id=conversation_id).delete()

        payloads = broadcaster.payloads(EVENTS.CONVERSATION_CHANGE)
        assert payloads == [
            {"operation": "delete", "document": {"id": str(conversation_id)}}
        ] * 2


class TestUserChanges:
    def test_profile_update_goes_to_everyone(
        self, student, broadcaster, django_capture_on_commit_callbacks
    ):
        student.name = "Alice Renamed"

        with django_capture_on_commit_callbacks(execute=True):
            student.save()

        [(_, scope, payload)] = broadcaster.events(EVENTS.USER_CHANGE)
        assert scope.group_name == ALL_USERS_GROUP
        assert payload["operation"] == "update"
        assert payload["document"]["name"] == "Alice Renamed"
        assert "email" not in payload["document"]

    def test_last_login_bookkeeping_is_skipped(
        self, student, broadcaster, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            student.save(update_fields=["last_login"])

        assert broadcaster.events(EVENTS.USER_CHANGE) == []

    def test_user_delete(self, db, broadcaster, django_capture_on_commit_callbacks):
        user = UserFactory()
        user_id = user.id

        with django_capture_on_commit_callbacks(execute=True):
            User.objects.get(id=user_id).delete()

        assert broadcaster.payloads(EVENTS.USER_CHANGE) == [
            {"operation": "delete", "document": {"id": str(user_id)}}
        ]

    def test_presence_writes_are_not_mirrored(
        self, student, broadcaster, django_capture_on_commit_callbacks
    ):
        from realtime.presence import PresenceService

        with django_capture_on_commit_callbacks(execute=True):
            PresenceService.set_online(student.id)

        assert broadcaster.events(EVENTS.USER_CHANGE) == []
        assert len(broadcaster.events(EVENTS.USER_STATUS_CHANGED)) == 1


def test_rejected_send_registers_no_callbacks(
    teacher, student, broadcaster, django_capture_on_commit_callbacks
):
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        MessageService.send_message(teacher, "", MessageTarget.to_user(student.id))

    assert callbacks == []
    assert Message.objects.count() == 0
