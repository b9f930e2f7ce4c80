"""
Request and response bodies.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateUserRequest(BaseModel):
    email: str
    password: str


class CreateUserResponse(BaseModel):
    id: str


class SignInRequest(BaseModel):
    email: str
    password: str


class Token(BaseModel):
    token: str


class UserResponse(BaseModel):
    """Public view of a user. The password hash is never part of it."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    logo_url: Optional[str] = None


class TrainingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sequence: int
    topic: Optional[str] = None
    name: str
    url: Optional[str] = None
    is_free: bool
    project_url: Optional[str] = None
    course_id: int


class CardSetupResponse(BaseModel):
    ephemeral_key_id: str
    intent_client_secret: str


class GatewayCard(BaseModel):
    id: str
    brand: Optional[str] = None
    last_four: Optional[str] = None
    exp_month: Optional[int] = None
    exp_year: Optional[int] = None


class AddCardRequest(BaseModel):
    payment_method_id: str = Field(..., min_length=1)


class CardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    stripe_pay_method_id: str
    created_at: datetime


class AuthorizeRequest(BaseModel):
    amount: int = Field(..., ge=0, description="Amount in minor currency units")
    currency: str = Field(..., min_length=3, max_length=3)
    description: str = ""


class AuthorizeResponse(BaseModel):
    client_secret: Optional[str] = None


class CaptureRequest(BaseModel):
    amount: Optional[int] = Field(default=None, ge=0, description="Partial capture; defaults to the full amount")


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    stripe_payment_intent_id: str
    user_id: int
    amount: int
    currency: str
    status: str
    created_at: datetime
    updated_at: datetime
