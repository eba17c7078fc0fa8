# Overview: Pytest coverage for the replenishment formulas.

import math

import pytest

from tallypos.services import stock_math


class TestStockMath:
    def test_safety_stock(self):
        # 1.65 * sqrt(4 * 3^2 + 2^2 * 1^2) = 1.65 * sqrt(40)
        assert stock_math.safety_stock(4, 3, 2, 1) == pytest.approx(1.65 * math.sqrt(40))

    def test_safety_stock_custom_z(self):
        assert stock_math.safety_stock(1, 1, 0, 0, z_factor=2.0) == pytest.approx(2.0)

    def test_reorder_point(self):
        assert stock_math.reorder_point(5, 7, 3.5) == pytest.approx(38.5)

    def test_economic_order_quantity(self):
        # sqrt(2 * 1000 * 50 / 10) = 100
        assert stock_math.economic_order_quantity(1000, 50, 10) == pytest.approx(100)

    @pytest.mark.parametrize("demand,holding", [(0, 10), (-5, 10), (1000, 0)])
    def test_economic_order_quantity_degenerate(self, demand, holding):
        assert stock_math.economic_order_quantity(demand, 50, holding) == 0.0
