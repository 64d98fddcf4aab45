"""Transaction ledger routes."""
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import AliasChoices, Field

from api.db.models import TradeSide
from api.deps import get_bot_service
from api.routes.bot import TransactionResponse, transaction_to_response
from api.schemas import CamelModel
from api.services.bot_service import BotService

router = APIRouter()


class TransactionCreate(CamelModel):
    bot_id: int
    type: TradeSide = Field(validation_alias=AliasChoices("type", "side"))
    price: float = Field(ge=0)
    amount: float = Field(ge=0)
    value: float = Field(ge=0)
    fee: Optional[float] = Field(default=0.0, ge=0)


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    data: TransactionCreate,
    service: BotService = Depends(get_bot_service),
):
    transaction = await service.record_transaction(
        bot_id=data.bot_id,
        side=data.type.value,
        price=data.price,
        amount=data.amount,
        value=data.value,
        fee=data.fee or 0.0,
    )
    return transaction_to_response(transaction)
