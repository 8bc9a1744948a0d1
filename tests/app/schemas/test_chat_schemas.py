"""Tests for the chat request and response schemas."""

import uuid

import pytest
from pydantic import TypeAdapter, ValidationError

from livechat.schemas.conversation import (
    ClientSubject,
    FindOrCreateRequest,
    GuestSessionSubject,
    SubjectRef,
    subject_from_columns,
)
from livechat.schemas.message import MessageRead, PinReorderRequest


def test_subject_ref_discriminates_on_type():
    subject_id = uuid.uuid4()
    adapter = TypeAdapter(SubjectRef)

    subject = adapter.validate_python({"type": "guest_session", "id": str(subject_id)})
    assert isinstance(subject, GuestSessionSubject)
    assert subject.id == subject_id

    with pytest.raises(ValidationError):
        adapter.validate_python({"type": "vendor", "id": str(subject_id)})


def test_subject_from_columns():
    subject_id = uuid.uuid4()
    assert subject_from_columns("client", subject_id) == ClientSubject(id=subject_id)
    assert subject_from_columns(None, None) is None


def test_find_or_create_only_accepts_clients_and_leads():
    with pytest.raises(ValidationError):
        FindOrCreateRequest(subject_type="guest_session", subject_id=uuid.uuid4())


def test_pin_reorder_requires_ids():
    with pytest.raises(ValidationError):
        PinReorderRequest(message_ids=[])


def test_message_read_accepts_metadata_key():
    message = MessageRead.model_validate(
        {
            "id": str(uuid.uuid4()),
            "conversation_id": str(uuid.uuid4()),
            "body": "hi",
            "message_type": "text",
            "status": "sent",
            "is_internal_note": False,
            "is_pinned": False,
            "is_edited": False,
            "metadata": {"is_ai_response": True},
            "created_at": "2026-03-02T09:00:00Z",
        }
    )
    assert message.metadata == {"is_ai_response": True}
    assert message.model_dump(mode="json")["metadata"] == {"is_ai_response": True}
