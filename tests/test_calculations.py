from datetime import date
from types import SimpleNamespace
from uuid import uuid4

import pytest

from erp_api.core.errors import BusinessRuleError
from erp_api.repositories.base import total_pages
from erp_api.services import invoicing, work_orders
from erp_api.services.catalog import copy_code, suggest_code
from erp_api.services.pricing import quote, resolve_price
from erp_api.services.shifts import preset_definitions, theoretical_hours
from erp_api.services.stock import compute_stock_after, inverse_type


def test_total_pages():
    assert total_pages(0, 10) == 0
    assert total_pages(10, 10) == 1
    assert total_pages(21, 10) == 3


def test_suggest_code_continues_the_widest_numeric_suffix():
    assert suggest_code("ZP", []) == "ZP001"
    assert suggest_code("ZP", ["ZP001", "ZP002", "XX9"]) == "ZP003"
    assert suggest_code("ZP", ["ZP0099"]) == "ZP0100"
    assert suggest_code("F", ["F-1", "F7"]) == "F008"


def test_copy_code_picks_first_free_suffix():
    assert copy_code("A", set()) == "A-COPY"
    assert copy_code("A", {"A-COPY"}) == "A-COPY2"
    assert copy_code("A", {"A-COPY", "A-COPY2"}) == "A-COPY3"


class TestQuote:
    def test_from_sale_price(self):
        result = quote(purchase_price=60, tax_rate=21, sale_price=100)
        assert result["retail_price"] == 121.0
        assert result["margin_amount"] == 40.0
        assert result["margin_percent"] == 40.0

    def test_from_retail_price(self):
        result = quote(purchase_price=50, tax_rate=21, retail_price=121)
        assert result["sale_price"] == 100.0
        assert result["margin_percent"] == 50.0

    def test_zero_sale_price_has_no_margin_percent(self):
        result = quote(purchase_price=10, tax_rate=21, sale_price=0)
        assert result["margin_percent"] == 0
        assert result["margin_amount"] == -10.0


def _price_list(**overrides):
    values = dict(
        active=True,
        valid_from=None,
        valid_to=None,
        price_base="sale",
        list_type="fixed",
        general_percent=0,
        lines=[],
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestResolvePrice:
    product_id = uuid4()

    def test_fixed_price_line_wins(self):
        pl = _price_list(list_type="percentage", general_percent=10, lines=[{"product_id": str(self.product_id), "price": 80}])
        result = resolve_price(pl, self.product_id, sale_price=100)
        assert result == {"applicable": True, "price": 80.0, "base_price": 100.0, "discount_percent": 20.0, "source": "line"}

    def test_discount_line(self):
        pl = _price_list(lines=[{"product_id": str(self.product_id), "discount_percent": 25}])
        assert resolve_price(pl, self.product_id, sale_price=100)["price"] == 75.0

    def test_inactive_line_is_ignored(self):
        pl = _price_list(lines=[{"product_id": str(self.product_id), "price": 1, "active": False}])
        result = resolve_price(pl, self.product_id, sale_price=100)
        assert result["source"] == "base"
        assert result["price"] == 100.0

    def test_percentage_list_on_retail_base(self):
        pl = _price_list(list_type="percentage", general_percent=10, price_base="retail")
        result = resolve_price(pl, self.product_id, sale_price=100, retail_price=121)
        assert result["base_price"] == 121.0
        assert result["price"] == 108.9
        assert result["source"] == "general"

    def test_outside_validity_window(self):
        pl = _price_list(valid_from=date(2024, 1, 1), valid_to=date(2024, 1, 31))
        assert resolve_price(pl, self.product_id, 100, on_date=date(2024, 2, 1))["applicable"] is False
        assert resolve_price(pl, self.product_id, 100, on_date=date(2024, 1, 15))["applicable"] is True

    def test_inactive_list(self):
        assert resolve_price(_price_list(active=False), self.product_id, 100)["applicable"] is False


class TestShiftHours:
    def test_day_shift(self):
        assert theoretical_hours("08:00", "15:00") == 7.0

    def test_night_shift_rolls_over_midnight(self):
        assert theoretical_hours("22:00", "06:00") == 8.0

    def test_break_window(self):
        assert theoretical_hours("09:00", "18:00", "14:00", "15:00") == 8.0

    def test_break_minutes_take_precedence(self):
        assert theoretical_hours("08:00", "16:00", "12:00", "14:00", break_minutes=30) == 7.5

    def test_never_negative(self):
        assert theoretical_hours("08:00", "09:00", break_minutes=120) == 0.0

    def test_presets(self):
        presets = {p["code"]: p for p in preset_definitions()}
        assert set(presets) == {"MORNING", "AFTERNOON", "NIGHT", "SPLIT"}
        assert presets["NIGHT"]["theoretical_hours"] == 8.0
        assert presets["SPLIT"]["theoretical_hours"] == 8.0
        assert presets["MORNING"]["weekdays"] == [0, 1, 2, 3, 4]


class TestWorkOrderTotals:
    def test_billable_lines_discount_and_tax(self):
        totals = work_orders.compute_totals(
            staff_lines=[{"hours": 2, "overtime_hours": 1, "cost_rate": 20, "sale_rate": 30}],
            material_lines=[{"quantity": 2, "unit_cost": 10, "unit_price": 25, "discount_percent": 20, "tax_rate": 10}],
            expense_lines=[{"amount": 50, "margin_percent": 10, "billable": False}],
            discount_percent=10,
        )
        assert totals["staff_cost"] == 60.0
        assert totals["staff_sale"] == 90.0
        assert totals["material_sale"] == 40.0
        assert totals["expense_cost"] == 50.0
        assert totals["expense_sale"] == 0.0
        assert totals["subtotal_sale"] == 130.0
        assert totals["global_discount"] == 13.0
        assert totals["taxable_base"] == 117.0
        assert totals["tax"] == 20.61
        assert totals["total_sale"] == 137.61
        assert totals["total_cost"] == 130.0
        assert totals["gross_margin"] == -13.0
        assert totals["margin_percent"] == -10.0

    def test_transport_cost(self):
        totals = work_orders.compute_totals(
            transport_lines=[{"km": 100, "cost_per_km": 0.5, "fixed_cost": 10, "tolls": 5, "sale_price": 80}]
        )
        assert totals["transport_cost"] == 65.0
        assert totals["transport_sale"] == 80.0
        assert totals["total_sale"] == 96.8

    def test_empty_order(self):
        totals = work_orders.compute_totals()
        assert totals["total_sale"] == 0.0
        assert totals["margin_percent"] == 0.0

    @pytest.mark.parametrize(
        "current,target,allowed",
        [
            ("draft", "planned", True),
            ("draft", "completed", False),
            ("paused", "in_progress", True),
            ("completed", "invoiced", True),
            ("in_progress", "annulled", True),
            ("invoiced", "annulled", False),
            ("annulled", "draft", False),
        ],
    )
    def test_transitions(self, current, target, allowed):
        assert work_orders.can_transition(current, target) is allowed

    def test_calendar_ranges(self):
        assert work_orders.calendar_range("week", date(2024, 5, 15)) == (date(2024, 5, 13), date(2024, 5, 19))
        assert work_orders.calendar_range("month", date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))


class TestInvoiceMath:
    def test_line_amounts(self):
        line = invoicing.compute_line(
            {"quantity": 2, "unit_price": 50, "discount_percent": 10, "tax_rate": 21, "unit_cost": 30}
        )
        assert line["gross"] == 100.0
        assert line["discount_amount"] == 10.0
        assert line["subtotal"] == 90.0
        assert line["tax"] == 18.9
        assert line["total"] == 108.9
        assert line["cost"] == 60.0
        assert line["unit_margin"] == 15.0
        assert line["margin_percent"] == 50.0

    def test_text_line_has_no_amounts(self):
        line = invoicing.compute_line({"kind": "text", "description": "Notes", "quantity": 3, "unit_price": 9})
        assert line["total"] == 0
        assert line["quantity"] == 0

    def test_totals_with_breakdown_discount_and_withholding(self):
        lines = [
            invoicing.compute_line({"quantity": 2, "unit_price": 50, "discount_percent": 10, "tax_rate": 21, "unit_cost": 30}),
            invoicing.compute_line({"quantity": 1, "unit_price": 100, "tax_rate": 10}),
            invoicing.compute_line({"kind": "text", "description": "Delivered on site"}),
            invoicing.compute_line({"quantity": 5, "unit_price": 10, "included_in_total": False}),
        ]
        totals, breakdown = invoicing.compute_totals(lines, discount_percent=10, withholding_percent=15)
        assert breakdown == [
            {"rate": 10.0, "base": 90.0, "tax": 9.0},
            {"rate": 21.0, "base": 81.0, "tax": 17.01},
        ]
        assert totals["gross_subtotal"] == 200.0
        assert totals["net_subtotal"] == 190.0
        assert totals["global_discount"] == 19.0
        assert totals["taxable_base"] == 171.0
        assert totals["total_tax"] == 26.01
        assert totals["withholding_amount"] == 25.65
        assert totals["total"] == 171.36
        assert totals["margin_percent"] == 185.0


class TestStockRules:
    def test_inverse_types(self):
        assert inverse_type("purchase_receipt") == "negative_adjustment"
        assert inverse_type("sale_issue") == "positive_adjustment"
        assert inverse_type("transfer_out") == "transfer_in"
        assert inverse_type("regularization") == "regularization"
        with pytest.raises(BusinessRuleError):
            inverse_type("teleport")

    def test_stock_after(self):
        assert compute_stock_after("purchase_receipt", 5, 3) == 8
        assert compute_stock_after("sale_issue", 5, 8) == -3
        assert compute_stock_after("regularization", 5, 12) == 12
        with pytest.raises(BusinessRuleError):
            compute_stock_after("teleport", 0, 1)
