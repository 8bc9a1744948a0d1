"""Fixtures for conversations and the CRM records they are about."""

import pytest

from livechat.constants.chat import SubjectType
from livechat.models.crm_subject import CrmSubject
from livechat.schemas.conversation import ConversationCreate


@pytest.fixture(scope="function")
def client_record(db, faker):
    record = CrmSubject(subject_type=SubjectType.CLIENT.value, name=faker.company())
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture(scope="function")
def lead_record(db, faker):
    record = CrmSubject(subject_type=SubjectType.LEAD.value, name=faker.name())
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture(scope="function")
def conversation(service, staff, customer):
    """Active conversation created by staff with the customer as participant."""
    conv = service.create_conversation(
        staff,
        ConversationCreate(title="Project kickoff", participants=[customer.id]),
    )
    service.effects.broadcaster.published.clear()
    service.effects.notifier.sent.clear()
    return conv


@pytest.fixture(scope="function")
def other_conversation(service, staff):
    conv = service.create_conversation(staff, ConversationCreate(title="Elsewhere"))
    service.effects.broadcaster.published.clear()
    service.effects.notifier.sent.clear()
    return conv
