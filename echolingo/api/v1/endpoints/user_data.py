"""Endpoints for the signed-in learner's own data."""
from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Body, Depends, Response

from echolingo.api.deps import get_current_user, get_user_service
from echolingo.schemas import ImportResponse, OkResponse, UserDataEnvelope
from echolingo.schemas.records import UserRecord
from echolingo.services.users import UserService
from echolingo.utils.exceptions import AccountNotFoundError, handle_account_not_found

router = APIRouter(prefix="/user", tags=["user data"])


@router.get("/data", response_model=UserDataEnvelope, response_model_by_alias=True)
def read_user_data(current_user: UserRecord = Depends(get_current_user)) -> UserDataEnvelope:
    return UserDataEnvelope(
        account=current_user.account,
        active=current_user.active,
        role=current_user.role,
        name=current_user.name,
        data=current_user.data,
    )


@router.put("/data", response_model=OkResponse)
async def replace_user_data(
    payload: Any = Body(None),
    current_user: UserRecord = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> OkResponse:
    """Sanitize and store the whole record sent by the client."""

    try:
        await service.replace_data(current_user.account, payload)
    except AccountNotFoundError as exc:
        raise handle_account_not_found(exc) from exc
    return OkResponse()


@router.get("/export")
def export_user_data(
    current_user: UserRecord = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> Response:
    """Download the learner record as a JSON attachment."""

    try:
        file_name, payload = service.export_data(current_user.account)
    except AccountNotFoundError as exc:
        raise handle_account_not_found(exc) from exc
    return Response(
        content=json.dumps(payload, ensure_ascii=False, indent=2),
        media_type="application/json; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


@router.post("/import", response_model=ImportResponse, response_model_by_alias=True)
async def import_user_data(
    payload: Any = Body(None),
    current_user: UserRecord = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> ImportResponse:
    """Replace the record with an exported file (or a bare record)."""

    try:
        user = await service.import_data(current_user.account, payload)
    except AccountNotFoundError as exc:
        raise handle_account_not_found(exc) from exc
    return ImportResponse(
        vocabulary_count=len(user.data.vocabulary),
        sentence_count=len(user.data.sentences),
    )
