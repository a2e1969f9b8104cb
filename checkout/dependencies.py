from fastapi import Request

from checkout.config import Settings
from checkout.stripe_service import StripeGateway


def app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> StripeGateway:
    return request.app.state.gateway
