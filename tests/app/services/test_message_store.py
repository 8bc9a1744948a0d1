"""Tests for MessageStore validations, threading and internal notes."""

import uuid

import pytest

from livechat.constants.chat import MessageType
from livechat.exceptions import ForbiddenError, NotFoundError, ValidationError
from livechat.schemas.message import Attachment, MessageCreate
from tests.fixtures.message_fixtures import send


def _attachment(size_bytes=1024, filename="quote.pdf"):
    return Attachment(
        filename=filename,
        extension="pdf",
        size_bytes=size_bytes,
        url=f"/storage/chat-attachments/{filename}",
        mime_type="application/pdf",
    )


def test_send_sets_defaults(service, customer, conversation, clock):
    message = service.send_message(customer, conversation.id, MessageCreate(body="Hi"))

    assert message.sender_id == customer.id
    assert message.status == "sent"
    assert message.message_type == MessageType.TEXT.value
    assert message.is_pinned is False
    assert message.is_edited is False
    assert message.reactions == {}

    conv = service.get_conversation(customer, conversation.id)
    assert conv.last_message_at.replace(tzinfo=None) == clock().replace(tzinfo=None)


def test_empty_body_rejected(service, customer, conversation):
    with pytest.raises(ValidationError):
        service.send_message(customer, conversation.id, MessageCreate(body="   "))


def test_attachment_only_message_allowed(service, customer, conversation):
    message = service.send_message(
        customer,
        conversation.id,
        MessageCreate(message_type="file", attachments=[_attachment()]),
    )
    assert message.body == ""
    assert message.attachments[0]["filename"] == "quote.pdf"


def test_attachment_only_message_can_be_disabled(
    db, broadcaster, notifier, clock, settings, customer, conversation
):
    from livechat.core.locks import ConversationLocks
    from livechat.services.conversation_service import ConversationService

    strict = ConversationService(
        db,
        broadcaster=broadcaster,
        notifier=notifier,
        clock=clock,
        settings=settings.model_copy(update={"allow_attachment_only_messages": False}),
        locks=ConversationLocks(),
    )
    with pytest.raises(ValidationError):
        strict.send_message(
            customer, conversation.id, MessageCreate(attachments=[_attachment()])
        )


def test_body_length_limit(service, customer, conversation, settings):
    with pytest.raises(ValidationError):
        service.send_message(
            customer,
            conversation.id,
            MessageCreate(body="x" * (settings.message_max_length + 1)),
        )

    message = service.send_message(
        customer, conversation.id, MessageCreate(body="x" * settings.message_max_length)
    )
    assert len(message.body) == settings.message_max_length


def test_attachment_limits(service, customer, conversation, settings):
    too_many = [
        _attachment(filename=f"f{i}.pdf")
        for i in range(settings.max_attachments_per_message + 1)
    ]
    with pytest.raises(ValidationError):
        service.send_message(
            customer, conversation.id, MessageCreate(body="files", attachments=too_many)
        )

    with pytest.raises(ValidationError):
        service.send_message(
            customer,
            conversation.id,
            MessageCreate(
                body="big", attachments=[_attachment(settings.attachment_max_bytes + 1)]
            ),
        )


def test_system_messages_cannot_be_sent(service, staff, conversation):
    with pytest.raises(ValidationError):
        service.send_message(
            staff, conversation.id, MessageCreate(body="x", message_type="system")
        )


def test_customer_cannot_write_internal_note(service, customer, conversation):
    with pytest.raises(ForbiddenError):
        service.send_message(
            customer, conversation.id, MessageCreate(body="x", is_internal_note=True)
        )


def test_reply_within_conversation(service, staff, customer, conversation):
    original = send(service, customer, conversation, "Question?")
    reply = service.send_message(
        staff, conversation.id, MessageCreate(body="Answer", reply_to_id=original.id)
    )
    assert reply.reply_to_id == original.id


def test_reply_across_conversations_rejected(
    service, staff, conversation, other_conversation
):
    elsewhere = send(service, staff, other_conversation, "Elsewhere")
    with pytest.raises(ValidationError):
        service.send_message(
            staff, conversation.id, MessageCreate(body="Re", reply_to_id=elsewhere.id)
        )


def test_reply_to_unknown_message(service, staff, conversation):
    with pytest.raises(NotFoundError):
        service.send_message(
            staff, conversation.id, MessageCreate(body="Re", reply_to_id=uuid.uuid4())
        )


def test_customer_cannot_reply_to_internal_note(service, staff, customer, conversation):
    note = send(service, staff, conversation, "note", is_internal_note=True)
    with pytest.raises(NotFoundError):
        service.send_message(
            customer, conversation.id, MessageCreate(body="Re", reply_to_id=note.id)
        )


def test_messages_listed_chronologically(service, staff, customer, conversation, clock):
    send(service, customer, conversation, "first")
    clock.advance(seconds=5)
    send(service, staff, conversation, "second")

    bodies = [m.body for m in service.list_messages_query(customer, conversation.id)]
    assert bodies == ["first", "second"]


def test_latest_for_returns_newest_in_order(service, staff, conversation, clock):
    for i in range(5):
        send(service, staff, conversation, f"m{i}")
        clock.advance(seconds=1)

    latest = service.messages.latest_for(conversation, 3)
    assert [m.body for m in latest] == ["m2", "m3", "m4"]


def test_edit_to_empty_rejected_without_attachments(service, customer, conversation):
    message = send(service, customer, conversation, "Hello")
    with pytest.raises(ValidationError):
        service.edit_message(customer, message.id, "  ")


def test_edit_to_empty_allowed_with_attachments(service, customer, conversation):
    message = service.send_message(
        customer,
        conversation.id,
        MessageCreate(body="see file", attachments=[_attachment()]),
    )
    edited = service.edit_message(customer, message.id, "")
    assert edited.body == ""
