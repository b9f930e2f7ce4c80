from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint

from game_student.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)            # bcrypt hash, never serialized
    stripe_id = Column(String, index=True)               # Stripe Customer ID


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    logo_url = Column(String)


class Training(Base):
    __tablename__ = "trainings"

    id = Column(Integer, primary_key=True)
    sequence = Column(Integer, nullable=False)
    topic = Column(String)
    name = Column(String, nullable=False)
    url = Column(String)
    is_free = Column(Boolean, default=False, nullable=False)
    project_url = Column(String, nullable=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)


class Card(Base):
    __tablename__ = "cards"
    __table_args__ = (UniqueConstraint("user_id", "stripe_pay_method_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    stripe_pay_method_id = Column(String, nullable=False)   # Stripe PaymentMethod ID
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    stripe_payment_intent_id = Column(String, unique=True, index=True, nullable=False)
    stripe_pay_method_id = Column(String)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)             # minor units
    currency = Column(String, nullable=False)
    status = Column(String, nullable=False)              # mirrors the PaymentIntent status
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
