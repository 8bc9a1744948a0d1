"""Fixtures for directory users and the actors acting as them."""

import pytest

from livechat.constants.chat import Role
from livechat.models.user import User
from livechat.schemas.actor import Actor


def _make_user(db, faker, role: Role) -> User:
    user = User(name=faker.name(), email=faker.unique.email(), role=role.value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def staff_user(db, faker):
    return _make_user(db, faker, Role.STAFF)


@pytest.fixture(scope="function")
def admin_user(db, faker):
    return _make_user(db, faker, Role.ADMIN)


@pytest.fixture(scope="function")
def customer_user(db, faker):
    return _make_user(db, faker, Role.CUSTOMER)


@pytest.fixture(scope="function")
def outsider_user(db, faker):
    """A customer who belongs to no conversation."""
    return _make_user(db, faker, Role.CUSTOMER)


@pytest.fixture
def staff(staff_user):
    return Actor(id=staff_user.id, role=Role.STAFF)


@pytest.fixture
def admin(admin_user):
    return Actor(id=admin_user.id, role=Role.ADMIN)


@pytest.fixture
def customer(customer_user):
    return Actor(id=customer_user.id, role=Role.CUSTOMER)


@pytest.fixture
def outsider(outsider_user):
    return Actor(id=outsider_user.id, role=Role.CUSTOMER)
