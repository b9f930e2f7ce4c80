import pytest

from game_student.errors import DuplicateEmailError, NotFoundError
from game_student.models import Course, Training
from tests.conftest import TestingSessionLocal


@pytest.fixture
def catalog():
    db = TestingSessionLocal()
    course = Course(id=1, name="Unity", description="2D games", logo_url="https://cdn/unity.png")
    db.add(course)
    db.add_all([
        Training(id=10, course_id=1, sequence=2, topic="Intro", name="Scenes", url="https://v/2", is_free=False),
        Training(id=11, course_id=1, sequence=1, topic="Intro", name="Install", url="https://v/1", is_free=True,
                 project_url="https://github.com/x/y"),
    ])
    db.commit()
    db.close()


def test_create_user_stores_hash_and_customer(store):
    user = store.create_user("a@b.com", "hashed", "cus_1")

    found = store.get_user_by_email("a@b.com")
    assert found.id == user.id
    assert found.password == "hashed"
    assert found.stripe_id == "cus_1"
    assert store.get_user_by_stripe_id("cus_1").id == user.id


def test_create_user_with_duplicate_email_fails(store):
    store.create_user("a@b.com", "hashed", "cus_1")

    with pytest.raises(DuplicateEmailError):
        store.create_user("a@b.com", "other", "cus_2")

    assert store.get_user_by_email("a@b.com").stripe_id == "cus_1"
    with pytest.raises(NotFoundError):
        store.get_user_by_stripe_id("cus_2")


def test_unknown_user_raises_not_found(store):
    with pytest.raises(NotFoundError):
        store.get_user_by_id(42)
    with pytest.raises(NotFoundError):
        store.get_user_by_email("nobody@b.com")


def test_catalog_lookups(store, catalog):
    assert [c.name for c in store.get_courses()] == ["Unity"]
    assert store.get_course_by_id(1).logo_url == "https://cdn/unity.png"
    assert store.get_training_by_id(11).project_url == "https://github.com/x/y"
    assert [t.sequence for t in store.get_trainings_for_course(1)] == [1, 2]
    assert len(store.get_trainings()) == 2


def test_catalog_missing_ids(store, catalog):
    with pytest.raises(NotFoundError):
        store.get_course_by_id(99)
    with pytest.raises(NotFoundError):
        store.get_training_by_id(99)
    with pytest.raises(NotFoundError):
        store.get_trainings_for_course(99)


def test_add_card_then_get_card_keeps_owner(store, user):
    card = store.add_card(user.id, "pm_card_visa")

    found = store.get_card(card.id)
    assert found.user_id == user.id
    assert found.stripe_pay_method_id == "pm_card_visa"
    assert store.get_card_by_method(user.id, "pm_card_visa").id == card.id


def test_add_same_card_twice_returns_existing(store, user):
    first = store.add_card(user.id, "pm_card_visa")
    second = store.add_card(user.id, "pm_card_visa")

    assert first.id == second.id
    assert store.get_card_by_method(user.id, "pm_card_visa").id == first.id
    with pytest.raises(NotFoundError):
        store.get_card(first.id + 1)


def test_add_card_for_unknown_user(store):
    with pytest.raises(NotFoundError):
        store.add_card(42, "pm_card_visa")


def test_payment_status_overwrite_is_idempotent(store, user):
    store.add_payment("pi_1", "pm_card_visa", user.id, 5000, "usd", "requires_capture")

    store.update_payment_status("pi_1", "succeeded")
    payment = store.update_payment_status("pi_1", "succeeded")

    assert payment.status == "succeeded"
    assert store.get_payment("pi_1").status == "succeeded"


def test_update_unknown_payment(store):
    with pytest.raises(NotFoundError):
        store.update_payment_status("pi_missing", "succeeded")


def test_pending_payments_excludes_terminal(store, user):
    store.add_payment("pi_1", "pm_1", user.id, 100, "usd", "requires_capture")
    store.add_payment("pi_2", "pm_1", user.id, 100, "usd", "succeeded")
    store.add_payment("pi_3", "pm_1", user.id, 100, "usd", "failed")

    assert [p.stripe_payment_intent_id for p in store.get_pending_payments()] == ["pi_1"]
