"""Administrator endpoints: accounts, backups and provider status."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from echolingo.api.deps import (
    get_current_admin,
    get_news_service,
    get_speech_client,
    get_store,
    get_user_service,
)
from echolingo.api.v1.endpoints.providers import build_provider_status
from echolingo.schemas import (
    BackupListResponse,
    OkResponse,
    PasswordChangeRequest,
    ProviderStatus,
    StatusChangeRequest,
    UserCreateRequest,
    UserListResponse,
)
from echolingo.schemas.records import UserRecord
from echolingo.services.news_service import NewsService
from echolingo.services.store import JsonStore
from echolingo.services.tts import OpenAISpeechClient
from echolingo.services.users import UserService
from echolingo.utils.exceptions import (
    AccountExistsError,
    AccountNotFoundError,
    InvalidRequestError,
    StoreError,
    handle_account_exists,
    handle_account_not_found,
    handle_invalid_request,
    handle_store_error,
)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=UserListResponse)
def list_users(
    _: UserRecord = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
) -> UserListResponse:
    return UserListResponse(users=service.list_users())


@router.post("/users", response_model=OkResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreateRequest,
    _: UserRecord = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
) -> OkResponse:
    """Create an account seeded with the starter deck."""

    try:
        await service.create_user(payload.account, payload.password, name=payload.name, role=payload.role)
    except InvalidRequestError as exc:
        raise handle_invalid_request(exc) from exc
    except AccountExistsError as exc:
        raise handle_account_exists(exc) from exc
    return OkResponse()


@router.delete("/users/{account}", response_model=OkResponse)
async def delete_user(
    account: str,
    admin: UserRecord = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
) -> OkResponse:
    try:
        await service.delete_user(account, acting_account=admin.account)
    except AccountNotFoundError as exc:
        raise handle_account_not_found(exc) from exc
    except InvalidRequestError as exc:
        raise handle_invalid_request(exc) from exc
    return OkResponse()


@router.patch("/users/{account}/password", response_model=OkResponse)
async def change_password(
    account: str,
    payload: PasswordChangeRequest,
    _: UserRecord = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
) -> OkResponse:
    try:
        await service.change_password(account, payload.password)
    except AccountNotFoundError as exc:
        raise handle_account_not_found(exc) from exc
    except InvalidRequestError as exc:
        raise handle_invalid_request(exc) from exc
    return OkResponse()


@router.patch("/users/{account}/status", response_model=OkResponse)
async def change_status(
    account: str,
    payload: StatusChangeRequest,
    admin: UserRecord = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
) -> OkResponse:
    """Enable or disable an account; disabling signs it out everywhere."""

    try:
        await service.set_status(account, payload.active, acting_account=admin.account)
    except AccountNotFoundError as exc:
        raise handle_account_not_found(exc) from exc
    except InvalidRequestError as exc:
        raise handle_invalid_request(exc) from exc
    return OkResponse()


@router.get("/backups", response_model=BackupListResponse)
async def list_backups(
    _: UserRecord = Depends(get_current_admin),
    store: JsonStore = Depends(get_store),
) -> BackupListResponse:
    return BackupListResponse(files=await store.list_backups())


@router.post("/backup", response_model=OkResponse)
async def create_backup(
    _: UserRecord = Depends(get_current_admin),
    store: JsonStore = Depends(get_store),
) -> OkResponse:
    try:
        await store.ensure_daily_backup(force=True)
    except StoreError as exc:
        raise handle_store_error(exc) from exc
    return OkResponse()


@router.post("/providers/refresh", response_model=ProviderStatus)
def refresh_providers(
    _: UserRecord = Depends(get_current_admin),
    speech: OpenAISpeechClient = Depends(get_speech_client),
    news: NewsService = Depends(get_news_service),
) -> ProviderStatus:
    return build_provider_status(speech, news)
