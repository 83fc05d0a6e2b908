"""
FastAPI dependencies - Dependency injection factories.

Domain services are plain objects built once at startup by
build_services() and stored on app.state. The Depends() factories
below hand them to routes.
"""

from dataclasses import dataclass
from datetime import timedelta

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresStore
from src.adapters.security.bcrypt_store import BcryptCredentialStore
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.validation.email import EmailAddressValidator
from src.config.settings import Settings
from src.domain.ban_dates import BanDateService
from src.domain.exceptions import AccessDeniedError
from src.domain.models import Member
from src.domain.registration import AccountRegistry
from src.domain.relations import RelationGraph
from src.domain.tokens import ConfirmationTokenService


@dataclass
class Services:
    """Domain services shared by every request."""

    registry: AccountRegistry
    relations: RelationGraph
    ban_dates: BanDateService


def build_services(pool: ConnectionPool, settings: Settings) -> Services:
    """
    Wire adapters into the domain services.

    Called once from the application lifespan.
    """
    store = PostgresStore(pool)
    tokens = ConfirmationTokenService(store=store, ttl=timedelta(minutes=settings.token_ttl_minutes))
    registry = AccountRegistry(
        store=store,
        tokens=tokens,
        credentials=BcryptCredentialStore(settings.bcrypt_cost),
        email_validator=EmailAddressValidator(settings.check_deliverability),
        notifier=ConsoleEmailSender(),
        base_url=settings.base_url,
    )
    return Services(
        registry=registry,
        relations=RelationGraph(store=store),
        ban_dates=BanDateService(store=store),
    )


def get_services(request: Request) -> Services:
    """
    Get domain services from app state.

    The services are created during app lifespan startup and stored in app.state.
    """
    return request.app.state.services


def get_account_registry(request: Request) -> AccountRegistry:
    return get_services(request).registry


def get_relation_graph(request: Request) -> RelationGraph:
    return get_services(request).relations


def get_ban_date_service(request: Request) -> BanDateService:
    return get_services(request).ban_dates


# HTTP BASIC AUTH security scheme for OpenAPI documentation
http_basic = HTTPBasic()


def get_current_member(
    credentials: HTTPBasicCredentials = Depends(http_basic),
    registry: AccountRegistry = Depends(get_account_registry),
) -> Member:
    """
    Resolve the calling member from the HTTP BASIC AUTH header.

    FastAPI's HTTPBasic already returns 401 for a missing or malformed
    header. Wrong credentials and unconfirmed members get the same
    generic 401.
    """
    try:
        return registry.authenticate(credentials.username, credentials.password)
    except AccessDeniedError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        ) from None
