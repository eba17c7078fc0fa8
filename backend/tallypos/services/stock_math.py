# Overview: Closed-form replenishment formulas (EOQ, safety stock, reorder point).

from __future__ import annotations

import math


# Service level of ~95% (one-sided z)
DEFAULT_Z_FACTOR = 1.65


def safety_stock(
    lead_time_days: float,
    demand_std_dev: float,
    avg_daily_sales: float,
    lead_time_std_dev: float,
    z_factor: float = DEFAULT_Z_FACTOR,
) -> float:
    """z * sqrt(L * sigma_d^2 + d^2 * sigma_L^2)"""
    return z_factor * math.sqrt(
        lead_time_days * demand_std_dev ** 2
        + avg_daily_sales ** 2 * lead_time_std_dev ** 2
    )


def reorder_point(avg_daily_sales: float, lead_time_days: float, safety: float) -> float:
    return avg_daily_sales * lead_time_days + safety


def economic_order_quantity(annual_demand: float, order_cost: float, holding_cost: float) -> float:
    """
    sqrt(2DS / H).

    Returns 0 when there is no demand or no holding cost to balance against.
    """
    if annual_demand <= 0 or holding_cost <= 0:
        return 0.0
    return math.sqrt((2 * annual_demand * order_cost) / holding_cost)
