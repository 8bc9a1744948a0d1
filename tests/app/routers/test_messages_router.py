"""Tests for the messages and comments API."""

from datetime import datetime, timezone

import pytest

from tests.fixtures.client_fixtures import auth_headers


@pytest.fixture
def posted_message(client, customer, conversation):
    """Message sent over HTTP so it carries a real timestamp."""
    resp = client.post(
        f"/conversations/{conversation.id}/messages",
        json={"body": "Hello"},
        headers=auth_headers(customer),
    )
    assert resp.status_code == 201
    return resp.json()


def test_edit_and_history(client, customer, staff, posted_message):
    message_id = posted_message["id"]
    resp = client.patch(
        f"/messages/{message_id}", json={"body": "Hello there"}, headers=auth_headers(customer)
    )
    assert resp.status_code == 200
    assert resp.json()["body"] == "Hello there"
    assert resp.json()["is_edited"] is True
    assert resp.json()["original_message"] == "Hello"

    resp = client.get(f"/messages/{message_id}/history", headers=auth_headers(staff))
    assert resp.status_code == 200
    history = resp.json()
    assert history["edit_count"] == 1
    assert history["history"][0]["previous_text"] == "Hello"
    assert history["current"] == "Hello there"


def test_noop_edit_and_foreign_edit(client, customer, staff, posted_message):
    message_id = posted_message["id"]
    resp = client.patch(
        f"/messages/{message_id}", json={"body": "Hello"}, headers=auth_headers(customer)
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "no_change"

    resp = client.patch(
        f"/messages/{message_id}", json={"body": "Hijack"}, headers=auth_headers(staff)
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"


def test_edit_window_expired(client, db, customer, customer_message):
    customer_message.created_at = datetime(2020, 1, 1, tzinfo=timezone.utc)
    db.commit()

    resp = client.patch(
        f"/messages/{customer_message.id}",
        json={"body": "Too late"},
        headers=auth_headers(customer),
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "edit_window_expired"


def test_delivered(client, staff, posted_message):
    resp = client.post(
        f"/messages/{posted_message['id']}/delivered", headers=auth_headers(staff)
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "delivered"


def test_reactions(client, customer, staff, posted_message):
    message_id = posted_message["id"]
    for actor in (customer, customer, staff):
        resp = client.post(
            f"/messages/{message_id}/reactions",
            json={"emoji": "👍"},
            headers=auth_headers(actor),
        )
        assert resp.status_code == 200
    assert set(resp.json()["reactions"]["👍"]) == {str(customer.id), str(staff.id)}

    resp = client.delete(
        f"/messages/{message_id}/reactions/👍", headers=auth_headers(customer)
    )
    assert resp.json()["reactions"] == {"👍": [str(staff.id)]}

    resp = client.post(
        f"/messages/{message_id}/reactions",
        json={"emoji": "not an emoji"},
        headers=auth_headers(customer),
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "validation_error"


def test_pin_and_unpin(client, staff, customer, posted_message):
    message_id = posted_message["id"]
    resp = client.post(f"/messages/{message_id}/pin", headers=auth_headers(customer))
    assert resp.json()["is_pinned"] is True
    assert resp.json()["pinned_by"] == str(customer.id)

    resp = client.delete(f"/messages/{message_id}/pin", headers=auth_headers(staff))
    assert resp.json()["is_pinned"] is False


def test_comments(client, staff, customer, admin, posted_message):
    message_id = posted_message["id"]
    resp = client.post(
        f"/messages/{message_id}/comments",
        json={"body": "Checking"},
        headers=auth_headers(staff),
    )
    assert resp.status_code == 201
    comment_id = resp.json()["id"]
    assert resp.json()["author_id"] == str(staff.id)

    resp = client.get(f"/messages/{message_id}/comments", headers=auth_headers(customer))
    assert [c["body"] for c in resp.json()] == ["Checking"]

    resp = client.delete(f"/comments/{comment_id}", headers=auth_headers(customer))
    assert resp.status_code == 403

    resp = client.delete(f"/comments/{comment_id}", headers=auth_headers(admin))
    assert resp.status_code == 204

    resp = client.get(f"/messages/{message_id}/comments", headers=auth_headers(staff))
    assert resp.json() == []


def test_outsider_cannot_read_message(client, outsider, posted_message):
    resp = client.get(f"/messages/{posted_message['id']}", headers=auth_headers(outsider))
    assert resp.status_code == 403
