"""Grid bot management routes."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field, model_validator

from api.db.models import Bot, BotStats, BotStatus, Transaction
from api.deps import get_bot_service, get_current_user, get_exchange_client
from api.schemas import CamelModel
from api.services.bot_service import BotService
from shared.exchanges import BitgetClient

router = APIRouter()


class BotCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    trading_pair: str = Field(min_length=3, max_length=32)
    base_asset: Optional[str] = Field(default=None, max_length=16)
    quote_asset: Optional[str] = Field(default=None, max_length=16)
    investment: float = Field(gt=0)
    status: BotStatus
    upper_limit: float = Field(gt=0)
    lower_limit: float = Field(ge=0)
    grid_count: int = Field(ge=1)
    profit_per_grid: float = Field(gt=0, lt=1)
    stop_loss: Optional[float] = Field(default=None, ge=0)
    is_paper_trading: bool = False

    @model_validator(mode="after")
    def check_price_range(self) -> "BotCreate":
        if self.upper_limit <= self.lower_limit:
            raise ValueError("upperLimit must be greater than lowerLimit")
        return self


class BotUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    trading_pair: Optional[str] = Field(default=None, min_length=3, max_length=32)
    base_asset: Optional[str] = Field(default=None, max_length=16)
    quote_asset: Optional[str] = Field(default=None, max_length=16)
    investment: Optional[float] = Field(default=None, gt=0)
    status: Optional[BotStatus] = None
    upper_limit: Optional[float] = Field(default=None, gt=0)
    lower_limit: Optional[float] = Field(default=None, ge=0)
    grid_count: Optional[int] = Field(default=None, ge=1)
    profit_per_grid: Optional[float] = Field(default=None, gt=0, lt=1)
    stop_loss: Optional[float] = Field(default=None, ge=0)
    is_paper_trading: Optional[bool] = None


class BotResponse(CamelModel):
    id: int
    user_id: int
    name: str
    trading_pair: str
    base_asset: str
    quote_asset: str
    investment: float
    status: str
    upper_limit: float
    lower_limit: float
    grid_count: int
    profit_per_grid: float
    stop_loss: Optional[float]
    is_paper_trading: bool
    created_at: datetime
    last_active_at: datetime


class TransactionResponse(CamelModel):
    id: int
    bot_id: int
    type: str
    price: float
    amount: float
    value: float
    fee: float
    timestamp: datetime


class BotStatsResponse(CamelModel):
    id: int
    bot_id: int
    total_profit: float
    completed_trades: int
    return_percentage: float
    last_updated: datetime


class GridSummaryResponse(CamelModel):
    bot_id: int
    upper_limit: float
    lower_limit: float
    grid_count: int
    step_size: float
    potential_profit: float
    estimated_monthly_return: float
    levels: List[float]


class GridOrderResponse(CamelModel):
    bot_id: int
    status: str
    order_id: str
    client_oid: str
    state: str
    request_time: int
    params: Dict[str, Any]


def bot_to_response(bot: Bot) -> BotResponse:
    return BotResponse.model_validate(bot.model_dump())


def transaction_to_response(transaction: Transaction) -> TransactionResponse:
    return TransactionResponse(
        id=transaction.id,
        bot_id=transaction.bot_id,
        type=transaction.side,
        price=transaction.price,
        amount=transaction.amount,
        value=transaction.value,
        fee=transaction.fee,
        timestamp=transaction.timestamp,
    )


def stats_to_response(stats: BotStats) -> BotStatsResponse:
    return BotStatsResponse.model_validate(stats.model_dump())


@router.get("", response_model=List[BotResponse])
async def list_bots(
    user_id: int = Depends(get_current_user),
    service: BotService = Depends(get_bot_service),
):
    bots = await service.list_bots(user_id)
    return [bot_to_response(bot) for bot in bots]


@router.post("", response_model=BotResponse, status_code=status.HTTP_201_CREATED)
async def create_bot(
    data: BotCreate,
    user_id: int = Depends(get_current_user),
    service: BotService = Depends(get_bot_service),
):
    bot = await service.create_bot(user_id, **data.model_dump())
    return bot_to_response(bot)


@router.get("/{bot_id}", response_model=BotResponse)
async def get_bot(
    bot_id: int,
    service: BotService = Depends(get_bot_service),
):
    bot = await service.get_bot(bot_id)
    return bot_to_response(bot)


@router.patch("/{bot_id}", response_model=BotResponse)
async def update_bot(
    bot_id: int,
    data: BotUpdate,
    service: BotService = Depends(get_bot_service),
):
    update_data = data.model_dump(exclude_unset=True)
    bot = await service.update_bot(bot_id, **update_data)
    return bot_to_response(bot)


@router.get("/{bot_id}/transactions", response_model=List[TransactionResponse])
async def list_bot_transactions(
    bot_id: int,
    limit: Optional[int] = Query(None),
    service: BotService = Depends(get_bot_service),
):
    transactions = await service.list_transactions(bot_id, limit=limit)
    return [transaction_to_response(t) for t in transactions]


@router.get("/{bot_id}/stats", response_model=BotStatsResponse)
async def get_bot_stats(
    bot_id: int,
    service: BotService = Depends(get_bot_service),
):
    stats = await service.get_bot_stats(bot_id)
    return stats_to_response(stats)


@router.get("/{bot_id}/grid", response_model=GridSummaryResponse)
async def get_bot_grid(
    bot_id: int,
    levels: int = Query(5, ge=1, le=200),
    service: BotService = Depends(get_bot_service),
):
    summary = await service.get_grid_summary(bot_id, levels=levels)
    return GridSummaryResponse(
        bot_id=bot_id,
        upper_limit=summary.upper_limit,
        lower_limit=summary.lower_limit,
        grid_count=summary.grid_count,
        step_size=summary.step_size,
        potential_profit=summary.potential_profit,
        estimated_monthly_return=summary.estimated_monthly_return,
        levels=summary.levels,
    )


@router.post("/{bot_id}/grid-order", response_model=GridOrderResponse, status_code=status.HTTP_201_CREATED)
async def submit_grid_order(
    bot_id: int,
    service: BotService = Depends(get_bot_service),
    client: BitgetClient = Depends(get_exchange_client),
):
    ack = await service.submit_grid_order(bot_id, client)
    return GridOrderResponse(
        bot_id=bot_id,
        status=ack.status.value,
        order_id=ack.order_id,
        client_oid=ack.client_oid,
        state=ack.state,
        request_time=ack.request_time,
        params=ack.params,
    )
