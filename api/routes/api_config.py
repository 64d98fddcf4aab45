"""Venue credential routes.

Stored credentials are never returned verbatim: the key is shown as
``first4...last4`` and the secret and passphrase as a fixed placeholder.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field

from api.db.models import ApiConfig
from api.deps import get_bot_service, get_current_user
from api.schemas import CamelModel
from api.services.bot_service import BotService

router = APIRouter()
logger = logging.getLogger(__name__)

MASKED_VALUE = "••••••••"


def mask_api_key(api_key: str) -> str:
    """abcd1234efgh -> abcd...efgh"""
    if len(api_key) <= 8:
        return "*" * 8
    return f"{api_key[:4]}...{api_key[-4:]}"


class ApiConfigCreate(CamelModel):
    api_key: str = Field(min_length=1, max_length=256)
    api_secret: str = Field(min_length=1, max_length=256)
    passphrase: str = Field(min_length=1, max_length=256)


class ApiConfigUpdate(CamelModel):
    api_key: Optional[str] = Field(default=None, min_length=1, max_length=256)
    api_secret: Optional[str] = Field(default=None, min_length=1, max_length=256)
    passphrase: Optional[str] = Field(default=None, min_length=1, max_length=256)


class ApiConfigResponse(CamelModel):
    id: int
    user_id: int
    api_key: str
    api_secret: str
    passphrase: str
    created_at: datetime


def _to_response(service: BotService, config: ApiConfig) -> ApiConfigResponse:
    try:
        credentials = service.decrypt_api_config(config)
    except Exception as err:
        logger.exception("decrypt api config failed id=%s", config.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to read API configuration",
        ) from err

    return ApiConfigResponse(
        id=config.id,
        user_id=config.user_id,
        api_key=mask_api_key(credentials.api_key),
        api_secret=MASKED_VALUE,
        passphrase=MASKED_VALUE,
        created_at=config.created_at,
    )


@router.get("", response_model=ApiConfigResponse)
async def get_api_config(
    user_id: int = Depends(get_current_user),
    service: BotService = Depends(get_bot_service),
):
    config = await service.get_api_config(user_id)
    return _to_response(service, config)


@router.post("", response_model=ApiConfigResponse, status_code=status.HTTP_201_CREATED)
async def save_api_config(
    data: ApiConfigCreate,
    user_id: int = Depends(get_current_user),
    service: BotService = Depends(get_bot_service),
):
    config = await service.save_api_config(
        user_id,
        api_key=data.api_key,
        api_secret=data.api_secret,
        passphrase=data.passphrase,
    )
    response = _to_response(service, config)
    logger.info("api config saved user_id=%s key=%s", user_id, response.api_key)
    return response


@router.patch("", response_model=ApiConfigResponse)
async def update_api_config(
    data: ApiConfigUpdate,
    user_id: int = Depends(get_current_user),
    service: BotService = Depends(get_bot_service),
):
    config = await service.update_api_config(user_id, **data.model_dump(exclude_unset=True))
    return _to_response(service, config)
