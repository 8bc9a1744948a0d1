"""Tests for ConversationManager: find-or-create, listing and unread bookkeeping."""

import uuid

import pytest

from livechat.constants.chat import ChatEventType, ConversationStatus, MessageType, Priority
from livechat.exceptions import ForbiddenError, NotFoundError
from livechat.schemas.conversation import (
    ClientSubject,
    ConversationCreate,
    ConversationListFilters,
    ConversationUpdate,
    LeadSubject,
)
from livechat.schemas.message import MessageCreate


def test_create_includes_creator_as_participant(service, staff, customer):
    conv = service.create_conversation(
        staff, ConversationCreate(title="Onboarding", participants=[customer.id, customer.id])
    )

    assert conv.participants == {staff.id, customer.id}
    assert conv.creator_id == staff.id
    assert conv.status == ConversationStatus.ACTIVE.value
    assert conv.priority == Priority.NORMAL.value
    assert conv.unread_count == 0


def test_find_or_create_creates_with_system_message(service, staff, client_record, broadcaster):
    result = service.find_or_create_conversation(staff, ClientSubject(id=client_record.id))

    assert result.created is True
    assert result.joined is False
    conv = result.conversation
    assert conv.title == f"Chat with {client_record.name}"
    assert conv.subject_type == "client"
    assert conv.subject_id == client_record.id

    messages = service.list_messages_query(staff, conv.id).all()
    assert len(messages) == 1
    assert messages[0].message_type == MessageType.SYSTEM.value
    assert messages[0].is_internal_note is True
    assert messages[0].body == f"Conversation started with {client_record.name}"
    assert broadcaster.events() == [ChatEventType.CONVERSATION_CREATED]


def test_find_or_create_joins_existing(
    service, staff, admin, client_record, broadcaster, notifier
):
    first = service.find_or_create_conversation(staff, ClientSubject(id=client_record.id))
    broadcaster.published.clear()
    notifier.sent.clear()

    second = service.find_or_create_conversation(admin, ClientSubject(id=client_record.id))

    assert second.created is False
    assert second.joined is True
    assert second.conversation.id == first.conversation.id
    assert admin.id in second.conversation.participants
    assert broadcaster.events() == [ChatEventType.PARTICIPANT_ADDED]
    assert notifier.recipients() == [staff.id]

    again = service.find_or_create_conversation(admin, ClientSubject(id=client_record.id))
    assert again.created is False
    assert again.joined is False


def test_find_or_create_ignores_archived(service, staff, lead_record):
    first = service.find_or_create_conversation(staff, LeadSubject(id=lead_record.id))
    service.archive_conversation(staff, first.conversation.id)

    second = service.find_or_create_conversation(staff, LeadSubject(id=lead_record.id))
    assert second.created is True
    assert second.conversation.id != first.conversation.id


def test_find_or_create_unknown_subject(service, staff, client_record):
    with pytest.raises(NotFoundError):
        service.find_or_create_conversation(staff, ClientSubject(id=uuid.uuid4()))

    # a client id looked up as a lead does not match
    with pytest.raises(NotFoundError):
        service.find_or_create_conversation(staff, LeadSubject(id=client_record.id))


def test_find_or_create_is_staff_only(service, customer, client_record):
    with pytest.raises(ForbiddenError):
        service.find_or_create_conversation(customer, ClientSubject(id=client_record.id))


def test_customer_list_only_shows_own_conversations(
    service, staff, customer, conversation, other_conversation
):
    visible = service.list_conversations_query(customer).all()
    assert [c.id for c in visible] == [conversation.id]

    everything = service.list_conversations_query(staff).all()
    assert {c.id for c in everything} == {conversation.id, other_conversation.id}


def test_list_is_ordered_by_recent_activity(
    service, staff, conversation, other_conversation, clock
):
    clock.advance(minutes=1)
    service.send_message(staff, conversation.id, MessageCreate(body="bump"))

    ordered = service.list_conversations_query(staff).all()
    assert [c.id for c in ordered] == [conversation.id, other_conversation.id]


def test_list_filters(service, staff, conversation, other_conversation):
    service.archive_conversation(staff, other_conversation.id)
    service.update_conversation(
        staff,
        conversation.id,
        ConversationUpdate(priority=Priority.HIGH, assigned_to=staff.id),
    )

    archived = service.list_conversations_query(
        staff, ConversationListFilters(status=ConversationStatus.ARCHIVED)
    ).all()
    assert [c.id for c in archived] == [other_conversation.id]

    high = service.list_conversations_query(
        staff, ConversationListFilters(priority=Priority.HIGH)
    ).all()
    assert [c.id for c in high] == [conversation.id]

    mine = service.list_conversations_query(
        staff, ConversationListFilters(assigned_to_me=True)
    ).all()
    assert [c.id for c in mine] == [conversation.id]

    found = service.list_conversations_query(
        staff, ConversationListFilters(search="kickoff")
    ).all()
    assert [c.id for c in found] == [conversation.id]


def test_internal_conversation_is_invisible_to_customers(service, staff, customer):
    conv = service.create_conversation(
        staff,
        ConversationCreate(title="Staff only", participants=[customer.id], is_internal=True),
    )
    with pytest.raises(NotFoundError):
        service.get_conversation(customer, conv.id)
    assert service.list_conversations_query(customer).all() == []


def test_unread_count_excludes_system_messages(service, staff, admin, client_record):
    result = service.find_or_create_conversation(staff, ClientSubject(id=client_record.id))
    conv = service.get_conversation(staff, result.conversation.id)

    assert conv.unread_count == 0
    assert service.unread_count(admin) == 0


def test_unread_count_ignores_archived_conversations(
    service, staff, customer, conversation
):
    service.send_message(customer, conversation.id, MessageCreate(body="hi"))
    assert service.unread_count(staff) == 1

    service.archive_conversation(staff, conversation.id)
    assert service.unread_count(staff) == 0


def test_mark_read_is_idempotent(service, staff, customer, conversation, broadcaster):
    service.send_message(customer, conversation.id, MessageCreate(body="hi"))
    broadcaster.published.clear()

    assert service.mark_as_read(staff, conversation.id) == 1
    assert service.mark_as_read(staff, conversation.id) == 0
    assert broadcaster.events() == [ChatEventType.MESSAGES_READ]


def test_mark_read_allowed_on_archived(service, staff, customer, conversation):
    service.send_message(customer, conversation.id, MessageCreate(body="hi"))
    service.archive_conversation(staff, conversation.id)

    assert service.mark_as_read(staff, conversation.id) == 1


def test_get_missing_conversation(service, staff):
    with pytest.raises(NotFoundError):
        service.get_conversation(staff, uuid.uuid4())
