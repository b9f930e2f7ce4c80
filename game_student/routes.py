import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from game_student.auth import verify_token
from game_student.config import Settings
from game_student.deps import get_gateway, get_sender, get_settings, get_store
from game_student.errors import NotFoundError, StoreError
from game_student.notifications import EmailSender
from game_student.schemas import (
    AddCardRequest,
    AuthorizeRequest,
    AuthorizeResponse,
    CaptureRequest,
    CardResponse,
    CardSetupResponse,
    CourseResponse,
    CreateUserRequest,
    CreateUserResponse,
    GatewayCard,
    PaymentResponse,
    SignInRequest,
    Token,
    TrainingResponse,
    UserResponse,
)
from game_student.security import create_access_token, hash_password, verify_password
from game_student.store import TERMINAL_STATUSES, Store
from game_student.stripe_service import StripeGateway, payment_method_id

logger = logging.getLogger(__name__)

router = APIRouter()

REQUIRES_CAPTURE = "requires_capture"


# ============= USERS & AUTH =============

@router.post("/users", response_model=CreateUserResponse, status_code=201)
def create_user(
    request: CreateUserRequest,
    store: Store = Depends(get_store),
    gateway: StripeGateway = Depends(get_gateway),
    sender: EmailSender = Depends(get_sender),
):
    email = request.email.strip()
    if not email or not request.password:
        raise HTTPException(status_code=400, detail="email and password are required")

    try:
        store.get_user_by_email(email)
    except NotFoundError:
        pass
    else:
        logger.warning("Registration with existing email: %s", email)
        raise HTTPException(status_code=400, detail=f"user with email {email} already exists")

    customer = gateway.create_customer(email)
    user = store.create_user(email, hash_password(request.password), customer.id)
    logger.info("User %s registered with stripe customer %s", user.id, customer.id)

    # The user row is already committed; a failed email still fails the request
    sender.send_registration_email(email)

    return CreateUserResponse(id=str(user.id))


@router.post("/signin", response_model=Token)
def signin(
    creds: SignInRequest,
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    email = creds.email.strip()
    try:
        user = store.get_user_by_email(email)
    except NotFoundError:
        logger.warning("Sign-in for unknown email: %s", email)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not verify_password(creds.password, user.password):
        logger.warning("Sign-in with wrong password: %s", email)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_access_token(
        user.email,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl_minutes=settings.token_ttl_minutes,
    )
    return Token(token=token)


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(user_id: int, store: Store = Depends(get_store), auth=Depends(verify_token)):
    return store.get_user_by_id(user_id)


# ============= CATALOG =============

@router.get("/courses", response_model=List[CourseResponse])
def get_courses(store: Store = Depends(get_store)):
    return store.get_courses()


@router.get("/courses/{course_id}", response_model=CourseResponse)
def get_course(course_id: int, store: Store = Depends(get_store)):
    return store.get_course_by_id(course_id)


@router.get("/courses/{course_id}/trainings", response_model=List[TrainingResponse])
def get_course_trainings(course_id: int, store: Store = Depends(get_store)):
    return store.get_trainings_for_course(course_id)


@router.get("/trainings", response_model=List[TrainingResponse])
def get_trainings(store: Store = Depends(get_store)):
    return store.get_trainings()


@router.get("/trainings/{training_id}", response_model=TrainingResponse)
def get_training(training_id: int, store: Store = Depends(get_store)):
    return store.get_training_by_id(training_id)


# ============= CARDS =============

@router.post("/users/{user_id}/card", response_model=CardSetupResponse, status_code=201)
def setup_card(
    user_id: int,
    store: Store = Depends(get_store),
    gateway: StripeGateway = Depends(get_gateway),
    auth=Depends(verify_token),
):
    """Start the client-side card setup: an ephemeral key plus a SetupIntent."""
    user = store.get_user_by_id(user_id)

    ephemeral_key = gateway.create_ephemeral_key(user.stripe_id)
    intent = gateway.create_setup_intent(user.stripe_id, user.id)

    return CardSetupResponse(
        ephemeral_key_id=ephemeral_key.id,
        intent_client_secret=intent.client_secret,
    )


@router.get("/users/{user_id}/cards", response_model=List[GatewayCard])
def list_cards(
    user_id: int,
    store: Store = Depends(get_store),
    gateway: StripeGateway = Depends(get_gateway),
):
    user = store.get_user_by_id(user_id)
    if not user.stripe_id:
        return []
    return gateway.list_cards(user.stripe_id)


@router.post("/users/{user_id}/cards", response_model=CardResponse, status_code=201)
def add_card(
    user_id: int,
    request: AddCardRequest,
    store: Store = Depends(get_store),
    auth=Depends(verify_token),
):
    card = store.add_card(user_id, request.payment_method_id)
    logger.info("Card %s stored for user %s", card.id, user_id)
    return card


@router.get("/users/{user_id}/cards/{card_id}", response_model=CardResponse)
def get_card(
    user_id: int,
    card_id: int,
    store: Store = Depends(get_store),
    auth=Depends(verify_token),
):
    card = store.get_card(card_id)
    if card.user_id != user_id:
        raise NotFoundError(f"no card found with id: {card_id}")
    return card


# ============= PAYMENTS =============

@router.post(
    "/users/{user_id}/cards/{paym_id}/authorize",
    response_model=AuthorizeResponse,
    status_code=202,
)
def authorize_payment(
    user_id: int,
    paym_id: str,
    request: AuthorizeRequest,
    store: Store = Depends(get_store),
    gateway: StripeGateway = Depends(get_gateway),
    auth=Depends(verify_token),
):
    user = store.get_user_by_id(user_id)
    store.get_card_by_method(user.id, paym_id)

    intent = gateway.create_payment_intent(
        request.amount,
        request.currency.lower(),
        paym_id,
        user.stripe_id,
        user.id,
        description=request.description,
    )

    try:
        store.add_payment(
            intent.id,
            payment_method_id(intent) or paym_id,
            user.id,
            request.amount,
            request.currency.lower(),
            intent.status,
        )
    except StoreError:
        # Not transactional with the gateway; `game-student reconcile` picks it up
        logger.error("Payment intent %s authorized but not stored locally", intent.id)
        raise

    if intent.status != REQUIRES_CAPTURE:
        logger.warning("Payment intent %s ended in %s", intent.id, intent.status)
        raise HTTPException(
            status_code=400,
            detail=f"payment intent {intent.id} was not authorized (status: {intent.status})",
        )

    logger.info("Payment intent %s authorized for user %s: %s %s",
                intent.id, user.id, request.amount, request.currency)
    return AuthorizeResponse(client_secret=intent.client_secret)


@router.post("/payment/{payment_id}/capture", response_model=PaymentResponse)
def capture_payment(
    payment_id: str,
    request: Optional[CaptureRequest] = None,
    store: Store = Depends(get_store),
    gateway: StripeGateway = Depends(get_gateway),
    auth=Depends(verify_token),
):
    payment = store.get_payment(payment_id)

    amount = payment.amount
    if request is not None and request.amount is not None:
        if request.amount > payment.amount:
            raise HTTPException(status_code=400, detail="capture amount exceeds the authorized amount")
        amount = request.amount

    if payment.status in TERMINAL_STATUSES:
        raise HTTPException(status_code=400, detail=f"PaymentIntent cannot be captured (status: {payment.status})")

    intent = gateway.retrieve_payment_intent(payment.stripe_payment_intent_id)
    if intent.status != REQUIRES_CAPTURE:
        raise HTTPException(status_code=400, detail=f"PaymentIntent cannot be captured (status: {intent.status})")

    captured = gateway.capture_payment_intent(intent.id, amount)
    payment = store.update_payment_status(payment.stripe_payment_intent_id, captured.status)

    logger.info("Payment intent %s captured: %s %s", intent.id, amount, payment.currency)
    return payment
