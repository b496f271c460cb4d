from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from erp_api.core.errors import BusinessRuleError, NotFoundError
from erp_api.db.models.catalog import PriceList
from erp_api.repositories.catalog import PriceListRepository
from erp_api.services.base import round2
from erp_api.services.catalog import CatalogService

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def quote(
    purchase_price: float,
    tax_rate: float,
    sale_price: Optional[float] = None,
    retail_price: Optional[float] = None,
) -> Dict[str, float]:
    """
    Margin and retail price arithmetic for a product.

    A retail price without a sale price is converted back to a pre-tax sale
    price. Margin percent is measured on the sale price.
    """
    factor = 1 + tax_rate / 100
    if sale_price is None:
        sale_price = (retail_price or 0) / factor
    margin_amount = sale_price - purchase_price
    margin_percent = margin_amount / sale_price * 100 if sale_price > 0 else 0
    return {
        "purchase_price": round2(purchase_price),
        "sale_price": round2(sale_price),
        "retail_price": round2(sale_price * factor),
        "tax_rate": round2(tax_rate),
        "margin_amount": round2(margin_amount),
        "margin_percent": round2(margin_percent),
    }


# PUBLIC_INTERFACE
def resolve_price(
    price_list: Any,
    product_id: UUID,
    sale_price: float,
    retail_price: Optional[float] = None,
    on_date: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Price of a product under a price list.

    An active line for the product wins; otherwise percentage lists apply
    their general percent and fixed lists fall back to the base price.
    """
    on_date = on_date or date.today()
    if (
        not price_list.active
        or (price_list.valid_from and on_date < price_list.valid_from)
        or (price_list.valid_to and on_date > price_list.valid_to)
    ):
        return {"applicable": False, "price": None, "base_price": None, "discount_percent": 0, "source": None}

    base = retail_price if price_list.price_base == "retail" and retail_price is not None else sale_price
    line = next(
        (
            ln for ln in (price_list.lines or [])
            if str(ln.get("product_id")) == str(product_id) and ln.get("active", True)
        ),
        None,
    )
    if line is not None:
        if line.get("price") is not None:
            price = float(line["price"])
            discount = (base - price) / base * 100 if base > 0 else 0
        else:
            discount = float(line.get("discount_percent") or 0)
            price = base * (1 - discount / 100)
        source = "line"
    elif price_list.list_type == "percentage":
        discount = float(price_list.general_percent or 0)
        price = base * (1 - discount / 100)
        source = "general"
    else:
        price, discount, source = base, 0, "base"
    return {
        "applicable": True,
        "price": round2(price),
        "base_price": round2(base),
        "discount_percent": round2(discount),
        "source": source,
    }


class PriceListService(CatalogService[PriceList]):
    """Price lists and their per-product lines."""

    repository_cls = PriceListRepository
    entity_label = "Price list"

    async def prepare(self, values, existing=None):
        if values.get("lines") is not None:
            values["lines"] = [_jsonable_line(ln) for ln in values["lines"]]
        return values

    # PUBLIC_INTERFACE
    async def upsert_line(self, list_id: UUID, product_id: UUID, line: Dict[str, Any]) -> PriceList:
        price_list = await self.get(list_id)
        if line.get("price") is None and line.get("discount_percent") is None:
            raise BusinessRuleError("A line needs either price or discount_percent")
        entry = _jsonable_line({**line, "product_id": product_id})
        lines: List[dict] = [ln for ln in (price_list.lines or []) if str(ln.get("product_id")) != str(product_id)]
        lines.append(entry)
        logger.info("Price list %s line for product %s saved", price_list.code, product_id)
        return await self.repo.update(price_list, {"lines": lines})

    # PUBLIC_INTERFACE
    async def remove_line(self, list_id: UUID, product_id: UUID) -> PriceList:
        price_list = await self.get(list_id)
        lines = [ln for ln in (price_list.lines or []) if str(ln.get("product_id")) != str(product_id)]
        if len(lines) == len(price_list.lines or []):
            raise NotFoundError.for_entity("Price list line", product_id)
        return await self.repo.update(price_list, {"lines": lines})

    # PUBLIC_INTERFACE
    async def resolve(
        self,
        list_id: UUID,
        product_id: UUID,
        sale_price: float,
        retail_price: Optional[float] = None,
        on_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        price_list = await self.get(list_id)
        return resolve_price(price_list, product_id, sale_price, retail_price, on_date)


def _jsonable_line(line: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(line)
    data["product_id"] = str(data["product_id"])
    return data
