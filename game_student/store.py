"""
Persistence layer.

Handlers depend on the abstract ``Store``; ``SqlStore`` is the SQLAlchemy
implementation used in production and in tests (against sqlite).
"""
import abc
import logging
from contextlib import contextmanager
from typing import List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from game_student.errors import DuplicateEmailError, NotFoundError, StoreError
from game_student.models import Card, Course, Payment, Training, User, utcnow

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("succeeded", "canceled", "failed")


class Store(abc.ABC):

    @abc.abstractmethod
    def create_user(self, email: str, hashed_password: str, stripe_id: str) -> User: ...

    @abc.abstractmethod
    def get_user_by_email(self, email: str) -> User: ...

    @abc.abstractmethod
    def get_user_by_id(self, user_id: int) -> User: ...

    @abc.abstractmethod
    def get_user_by_stripe_id(self, stripe_id: str) -> User: ...

    @abc.abstractmethod
    def get_courses(self) -> List[Course]: ...

    @abc.abstractmethod
    def get_course_by_id(self, course_id: int) -> Course: ...

    @abc.abstractmethod
    def get_trainings(self) -> List[Training]: ...

    @abc.abstractmethod
    def get_training_by_id(self, training_id: int) -> Training: ...

    @abc.abstractmethod
    def get_trainings_for_course(self, course_id: int) -> List[Training]: ...

    @abc.abstractmethod
    def add_card(self, user_id: int, stripe_pay_method_id: str) -> Card: ...

    @abc.abstractmethod
    def get_card(self, card_id: int) -> Card: ...

    @abc.abstractmethod
    def get_card_by_method(self, user_id: int, stripe_pay_method_id: str) -> Card: ...

    @abc.abstractmethod
    def add_payment(self, intent_id: str, pay_method_id: str, user_id: int,
                    amount: int, currency: str, status: str) -> Payment: ...

    @abc.abstractmethod
    def get_payment(self, intent_id: str) -> Payment: ...

    @abc.abstractmethod
    def update_payment_status(self, intent_id: str, status: str) -> Payment: ...

    @abc.abstractmethod
    def get_pending_payments(self) -> List[Payment]: ...


class SqlStore(Store):

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @contextmanager
    def _session(self, action: str):
        db = self.session_factory()
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Database error while %s: %s", action, e)
            raise StoreError(f"{action}: {e}") from e
        finally:
            db.close()

    # ---- users ----

    def create_user(self, email, hashed_password, stripe_id):
        db = self.session_factory()
        try:
            user = User(email=email, password=hashed_password, stripe_id=stripe_id)
            db.add(user)
            db.commit()
            return user
        except IntegrityError as e:
            db.rollback()
            raise DuplicateEmailError(f"user with email {email} already exists") from e
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(f"inserting user: {e}") from e
        finally:
            db.close()

    def get_user_by_email(self, email):
        with self._session("querying user by email") as db:
            user = db.query(User).filter_by(email=email).first()
        if user is None:
            raise NotFoundError(f"no user found with email: {email}")
        return user

    def get_user_by_id(self, user_id):
        with self._session("querying user by id") as db:
            user = db.get(User, user_id)
        if user is None:
            raise NotFoundError(f"no user found with id: {user_id}")
        return user

    def get_user_by_stripe_id(self, stripe_id):
        with self._session("querying user by stripe customer") as db:
            user = db.query(User).filter_by(stripe_id=stripe_id).first()
        if user is None:
            raise NotFoundError(f"no user found with stripe customer: {stripe_id}")
        return user

    # ---- catalog ----

    def get_courses(self):
        with self._session("listing courses") as db:
            return db.query(Course).order_by(Course.id).all()

    def get_course_by_id(self, course_id):
        with self._session("querying course by id") as db:
            course = db.get(Course, course_id)
        if course is None:
            raise NotFoundError(f"no course found with id: {course_id}")
        return course

    def get_trainings(self):
        with self._session("listing trainings") as db:
            return db.query(Training).order_by(Training.course_id, Training.sequence).all()

    def get_training_by_id(self, training_id):
        with self._session("querying training by id") as db:
            training = db.get(Training, training_id)
        if training is None:
            raise NotFoundError(f"no training found with id: {training_id}")
        return training

    def get_trainings_for_course(self, course_id):
        self.get_course_by_id(course_id)
        with self._session("listing trainings of course") as db:
            return (
                db.query(Training)
                .filter_by(course_id=course_id)
                .order_by(Training.sequence)
                .all()
            )

    # ---- cards ----

    def add_card(self, user_id, stripe_pay_method_id):
        with self._session("adding card") as db:
            if db.get(User, user_id) is None:
                raise NotFoundError(f"no user found with id: {user_id}")

            existing = (
                db.query(Card)
                .filter_by(user_id=user_id, stripe_pay_method_id=stripe_pay_method_id)
                .first()
            )
            if existing:
                return existing

            card = Card(user_id=user_id, stripe_pay_method_id=stripe_pay_method_id)
            db.add(card)
            db.commit()
            return card

    def get_card(self, card_id):
        with self._session("querying card") as db:
            card = db.get(Card, card_id)
        if card is None:
            raise NotFoundError(f"no card found with id: {card_id}")
        return card

    def get_card_by_method(self, user_id, stripe_pay_method_id):
        with self._session("querying card by payment method") as db:
            card = (
                db.query(Card)
                .filter_by(user_id=user_id, stripe_pay_method_id=stripe_pay_method_id)
                .first()
            )
        if card is None:
            raise NotFoundError(
                f"no card {stripe_pay_method_id} found for user {user_id}"
            )
        return card

    # ---- payments ----

    def add_payment(self, intent_id, pay_method_id, user_id, amount, currency, status):
        with self._session("adding payment") as db:
            payment = Payment(
                stripe_payment_intent_id=intent_id,
                stripe_pay_method_id=pay_method_id,
                user_id=user_id,
                amount=amount,
                currency=currency,
                status=status,
            )
            db.add(payment)
            db.commit()
            return payment

    def get_payment(self, intent_id):
        with self._session("querying payment") as db:
            payment = db.query(Payment).filter_by(stripe_payment_intent_id=intent_id).first()
        if payment is None:
            raise NotFoundError(f"no payment found with ID: {intent_id}")
        return payment

    def update_payment_status(self, intent_id, status):
        with self._session("updating payment") as db:
            payment = db.query(Payment).filter_by(stripe_payment_intent_id=intent_id).first()
            if payment is None:
                raise NotFoundError(f"no payment found with ID: {intent_id}")
            payment.status = status
            payment.updated_at = utcnow()
            db.commit()
            return payment

    def get_pending_payments(self):
        with self._session("listing pending payments") as db:
            return (
                db.query(Payment)
                .filter(Payment.status.notin_(TERMINAL_STATUSES))
                .order_by(Payment.id)
                .all()
            )
