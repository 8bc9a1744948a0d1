"""Tests for edit history lookups and the edit window rules."""

import pytest

from livechat.constants.chat import ChatEventType
from livechat.exceptions import ConversationArchivedError, ForbiddenError
from livechat.schemas.conversation import ClientSubject
from tests.fixtures.message_fixtures import send


def test_history_is_enriched_with_editor(
    service, staff, staff_user, conversation, clock
):
    message = send(service, staff, conversation, "Draft")
    clock.advance(minutes=2)
    service.edit_message(staff, message.id, "Final")

    history = service.get_edit_history(staff, message.id)

    assert history.message_id == message.id
    assert history.original == "Draft"
    assert history.current == "Final"
    assert history.edit_count == 1
    assert history.is_edited is True
    entry = history.history[0]
    assert entry.previous_text == "Draft"
    assert entry.edited_by == staff.id
    assert entry.edited_by_user.name == staff_user.name
    assert entry.edited_by_user.email == staff_user.email


def test_history_of_unedited_message(service, customer, customer_message):
    history = service.get_edit_history(customer, customer_message.id)

    assert history.edit_count == 0
    assert history.history == []
    assert history.original is None
    assert history.is_edited is False


def test_edit_broadcasts_and_notifies(
    service, staff, customer, conversation, broadcaster, notifier
):
    message = send(service, customer, conversation, "Hello")
    service.edit_message(customer, message.id, "Hello!")

    assert broadcaster.events() == [ChatEventType.MESSAGE_EDITED]
    assert broadcaster.published[0][2] == customer.id
    assert notifier.recipients() == [staff.id]


def test_system_messages_are_not_editable(service, staff, client_record):
    result = service.find_or_create_conversation(staff, ClientSubject(id=client_record.id))
    system_message = service.list_messages_query(staff, result.conversation.id).first()

    with pytest.raises(ForbiddenError):
        service.edit_message(staff, system_message.id, "rewritten")


def test_edit_in_archived_conversation(service, staff, customer, conversation):
    message = send(service, customer, conversation, "Hello")
    service.archive_conversation(staff, conversation.id)

    with pytest.raises(ConversationArchivedError):
        service.edit_message(customer, message.id, "Hello!")
