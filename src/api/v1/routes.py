"""
API v1 routes.

Defines REST endpoints for the membership API:
- POST  /v1/members                          - Register a member
- GET   /v1/members/confirm?token=           - Confirm email ownership
- GET   /v1/members/me                       - Current member
- POST  /v1/members/me/friends               - Follow a member
- GET   /v1/members/me/friends               - Members followed
- POST  /v1/members/me/ban-dates             - Record a date exception
- GET   /v1/members/me/ban-dates             - List date exceptions
- PATCH /v1/members/me/ban-dates/{id}        - Change a date exception status
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.dependencies import (
    get_account_registry,
    get_ban_date_service,
    get_current_member,
    get_relation_graph,
)
from src.api.models import (
    BanDateRequest,
    BanDateResponse,
    BanDateStatusRequest,
    ConfirmResponse,
    ErrorResponse,
    FollowRequest,
    FollowResponse,
    MemberResponse,
    RegisterRequest,
    RegisterResponse,
)
from src.domain.ban_dates import BanDateService
from src.domain.exceptions import (
    AccessDeniedError,
    AlreadyConfirmedError,
    BanDateNotFoundError,
    DuplicateEmailError,
    DuplicateRelationError,
    InvalidEmailError,
    InvalidStatusError,
    MemberNotFoundError,
    TokenExpiredError,
    TokenNotFoundError,
)
from src.domain.models import Member
from src.domain.registration import AccountRegistry
from src.domain.relations import RelationGraph

router = APIRouter(prefix="/members", tags=["v1"])


@router.post(
    "",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
        422: {"description": "Validation error"},
    },
    summary="Register a new member",
    description="Submit name, email, password and phone to register. "
    "A confirmation link will be sent to the provided email.",
)
async def register(
    request_data: RegisterRequest,
    registry: AccountRegistry = Depends(get_account_registry),
) -> RegisterResponse:
    """
    Register a new member and send the confirmation link.

    The token itself is only delivered by email.
    """
    try:
        registry.register(
            request_data.name,
            request_data.email,
            request_data.password,
            request_data.telephone,
        )
    except InvalidEmailError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Email is not valid",
        ) from None
    except DuplicateEmailError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email is already registered",
        ) from None
    return RegisterResponse(
        message="Confirmation email sent",
        email=request_data.email.strip(),
        expires_in_seconds=int(registry.tokens.ttl.total_seconds()),
    )


@router.get(
    "/confirm",
    response_model=ConfirmResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown token"},
        409: {"model": ErrorResponse, "description": "Email already confirmed"},
        410: {"model": ErrorResponse, "description": "Token expired"},
    },
    summary="Confirm email ownership",
    description="Target of the link sent by email. Activates the member on success.",
)
async def confirm(
    token: str = Query(..., min_length=1, max_length=64),
    registry: AccountRegistry = Depends(get_account_registry),
) -> ConfirmResponse:
    """Confirm a token and activate its member."""
    try:
        member = registry.confirm(token)
    except TokenNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Token does not exist") from None
    except AlreadyConfirmedError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already confirmed") from None
    except TokenExpiredError:
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="Token has expired") from None
    return ConfirmResponse(message="Email confirmed", email=member.email)


@router.get(
    "/me",
    response_model=MemberResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
    summary="Current member",
)
async def me(member: Member = Depends(get_current_member)) -> MemberResponse:
    return MemberResponse.of(member)


@router.post(
    "/me/friends",
    response_model=FollowResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        404: {"model": ErrorResponse, "description": "Receiver not found"},
        409: {"model": ErrorResponse, "description": "Already following or self-follow"},
    },
    summary="Follow a member",
    description="Creates a directed relation from the caller to the receiver. "
    "The receiver does not automatically follow back.",
)
async def follow(
    request_data: FollowRequest,
    member: Member = Depends(get_current_member),
    graph: RelationGraph = Depends(get_relation_graph),
) -> FollowResponse:
    try:
        graph.follow(member.email, request_data.receiver_email)
    except MemberNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found") from None
    except DuplicateRelationError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from None
    return FollowResponse(owner_email=member.email, friend_email=request_data.receiver_email)


@router.get(
    "/me/friends",
    response_model=list[MemberResponse],
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
    summary="Members followed by the caller",
)
async def friends(
    member: Member = Depends(get_current_member),
    graph: RelationGraph = Depends(get_relation_graph),
) -> list[MemberResponse]:
    return [MemberResponse.of(friend) for friend in graph.friends(member.email)]


@router.post(
    "/me/ban-dates",
    response_model=BanDateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
    summary="Record a date exception",
    description="Marks a calendar date as unavailable (status IMPOSSIBLE).",
)
async def create_ban_date(
    request_data: BanDateRequest,
    member: Member = Depends(get_current_member),
    service: BanDateService = Depends(get_ban_date_service),
) -> BanDateResponse:
    return BanDateResponse.of(service.create(member.email, request_data.date))


@router.get(
    "/me/ban-dates",
    response_model=list[BanDateResponse],
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
    summary="List the caller's date exceptions",
)
async def list_ban_dates(
    member: Member = Depends(get_current_member),
    service: BanDateService = Depends(get_ban_date_service),
) -> list[BanDateResponse]:
    return [BanDateResponse.of(ban_date) for ban_date in service.list_for(member.email)]


@router.patch(
    "/me/ban-dates/{ban_date_id}",
    response_model=BanDateResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        403: {"model": ErrorResponse, "description": "Not the owner of this date"},
        404: {"model": ErrorResponse, "description": "Unknown date exception"},
        422: {"model": ErrorResponse, "description": "Unknown status"},
    },
    summary="Change the status of a date exception",
)
async def edit_ban_date_status(
    ban_date_id: int,
    request_data: BanDateStatusRequest,
    member: Member = Depends(get_current_member),
    service: BanDateService = Depends(get_ban_date_service),
) -> BanDateResponse:
    try:
        ban_date = service.edit_status(ban_date_id, request_data.status, member.email)
    except InvalidStatusError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message) from None
    except BanDateNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Date not found") from None
    except AccessDeniedError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied") from None
    return BanDateResponse.of(ban_date)
