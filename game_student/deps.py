from fastapi import Request

from game_student.config import Settings
from game_student.notifications import EmailSender
from game_student.store import Store
from game_student.stripe_service import StripeGateway


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_gateway(request: Request) -> StripeGateway:
    return request.app.state.gateway


def get_sender(request: Request) -> EmailSender:
    return request.app.state.sender
