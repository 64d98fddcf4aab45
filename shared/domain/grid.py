"""网格参数计算 - 纯函数，无副作用"""
from dataclasses import dataclass, field
from typing import List

DEFAULT_LEVELS = 5
DEFAULT_ACTIVATION_RATE = 0.5
# 仪表盘月收益估算：30 天，每天约 33% 网格被触发
MONTHLY_DAYS = 30
DAILY_TRIGGER_RATE = 0.33


def step_size(upper: float, lower: float, grid_count: int) -> float:
    """相邻网格线的价差"""
    if grid_count < 1:
        raise ValueError("grid_count must be >= 1")
    return (upper - lower) / grid_count


def grid_levels(upper: float, lower: float, levels: int = DEFAULT_LEVELS) -> List[float]:
    """从 upper 到 lower（含两端）等距分布的 levels 个价格"""
    if levels < 1:
        raise ValueError("levels must be >= 1")
    if levels == 1:
        return [upper]

    span = upper - lower
    prices = [upper - span * i / (levels - 1) for i in range(levels)]
    # 避免浮点误差，两端取原值
    prices[-1] = lower
    return prices


def potential_profit(
    investment: float,
    profit_per_grid: float,
    grid_count: int,
    activation_rate: float = DEFAULT_ACTIVATION_RATE,
) -> float:
    """估算收益，不是保证值

    activation_rate 表示估算窗口内预计被触发的网格比例。
    """
    return investment * profit_per_grid * grid_count * activation_rate


def estimated_monthly_return(profit_per_grid: float) -> float:
    return profit_per_grid * MONTHLY_DAYS * DAILY_TRIGGER_RATE


@dataclass
class GridSummary:
    upper_limit: float
    lower_limit: float
    grid_count: int
    step_size: float
    potential_profit: float
    estimated_monthly_return: float
    levels: List[float] = field(default_factory=list)


def grid_summary(
    upper: float,
    lower: float,
    grid_count: int,
    investment: float,
    profit_per_grid: float,
    levels: int = DEFAULT_LEVELS,
    activation_rate: float = DEFAULT_ACTIVATION_RATE,
) -> GridSummary:
    return GridSummary(
        upper_limit=upper,
        lower_limit=lower,
        grid_count=grid_count,
        step_size=step_size(upper, lower, grid_count),
        potential_profit=potential_profit(investment, profit_per_grid, grid_count, activation_rate),
        estimated_monthly_return=estimated_monthly_return(profit_per_grid),
        levels=grid_levels(upper, lower, levels),
    )
