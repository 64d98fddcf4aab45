"""Portfolio-wide statistics routes."""
from fastapi import APIRouter, Depends

from api.deps import get_bot_service, get_current_user
from api.schemas import CamelModel
from api.services.bot_service import BotService

router = APIRouter()


class TotalStatsResponse(CamelModel):
    total_bots: int
    active_bots: int
    total_investment: float
    total_profit: float
    completed_trades: int


@router.get("", response_model=TotalStatsResponse)
async def get_total_stats(
    user_id: int = Depends(get_current_user),
    service: BotService = Depends(get_bot_service),
):
    totals = await service.get_totals(user_id)
    return TotalStatsResponse(**totals)
