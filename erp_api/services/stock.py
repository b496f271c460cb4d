from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from erp_api.core.errors import BusinessRuleError, InvalidStateError, NotFoundError
from erp_api.db.base import utcnow
from erp_api.db.models.inventory import StockMovement
from erp_api.repositories.inventory import StockMovementRepository
from erp_api.services.base import BaseService, round2

logger = logging.getLogger(__name__)

INBOUND_TYPES = frozenset(
    {"purchase_receipt", "customer_return", "positive_adjustment", "transfer_in", "opening_balance", "production_in"}
)
OUTBOUND_TYPES = frozenset(
    {"sale_issue", "supplier_return", "negative_adjustment", "transfer_out", "shrinkage", "production_out"}
)
REGULARIZATION = "regularization"

INVERSE_TYPES: Dict[str, str] = {
    "purchase_receipt": "negative_adjustment",
    "customer_return": "negative_adjustment",
    "opening_balance": "negative_adjustment",
    "production_in": "negative_adjustment",
    "sale_issue": "positive_adjustment",
    "supplier_return": "positive_adjustment",
    "shrinkage": "positive_adjustment",
    "production_out": "positive_adjustment",
    "positive_adjustment": "negative_adjustment",
    "negative_adjustment": "positive_adjustment",
    "transfer_in": "transfer_out",
    "transfer_out": "transfer_in",
    REGULARIZATION: REGULARIZATION,
}

LAST_COST_TYPES = ("purchase_receipt",)
AVERAGE_COST_TYPES = ("purchase_receipt", "opening_balance")

# Identity fields carried from a movement onto its reversal.
_REVERSAL_FIELDS = (
    "product_id", "product_code", "product_name", "sku", "variant_id", "warehouse_id", "warehouse_name",
    "origin", "document_id", "document_number", "counterparty_type", "counterparty_id", "counterparty_name",
    "unit_price", "unit_cost", "lot", "serial_number", "location",
)


# PUBLIC_INTERFACE
def compute_stock_after(movement_type: str, stock_before: float, quantity: float) -> float:
    """Balance after applying a movement: in adds, out subtracts, regularization sets."""
    if movement_type == REGULARIZATION:
        return quantity
    if movement_type in INBOUND_TYPES:
        return stock_before + quantity
    if movement_type in OUTBOUND_TYPES:
        return stock_before - quantity
    raise BusinessRuleError(f"Unknown movement type '{movement_type}'")


# PUBLIC_INTERFACE
def inverse_type(movement_type: str) -> str:
    try:
        return INVERSE_TYPES[movement_type]
    except KeyError:
        raise BusinessRuleError(f"Movement type '{movement_type}' cannot be reversed")


class StockService(BaseService):
    """
    Stock ledger operations.

    Every movement snapshots the balance before and after it; annulling a
    movement keeps it in the ledger flagged as annulled and books the inverse
    movement so the running balance stays consistent.
    """

    def __init__(self, session) -> None:
        super().__init__(session)
        self.repo = StockMovementRepository(session)

    async def get(self, movement_id: UUID) -> StockMovement:
        row = await self.repo.get(movement_id)
        if row is None:
            raise NotFoundError.for_entity("Stock movement", movement_id)
        return row

    # PUBLIC_INTERFACE
    async def current_stock(self, product_id: UUID, warehouse_id: UUID) -> float:
        """stock_after of the latest non-annulled movement, or 0."""
        latest = await self.repo.latest(product_id, warehouse_id)
        return float(latest.stock_after) if latest is not None else 0.0

    # PUBLIC_INTERFACE
    async def last_cost(self, product_id: UUID) -> float:
        cost = await self.repo.latest_cost(product_id, LAST_COST_TYPES)
        return float(cost or 0)

    # PUBLIC_INTERFACE
    async def average_cost(self, product_id: UUID) -> float:
        """Weighted average cost of costed receipts and opening balances."""
        value, qty = await self.repo.weighted_cost(product_id, AVERAGE_COST_TYPES)
        return round(value / qty, 4) if qty > 0 else 0.0

    def _build(self, values: Dict[str, Any], stock_before: float, user_id: Optional[UUID]) -> StockMovement:
        quantity = float(values["quantity"])
        movement = StockMovement(**values)
        movement.stock_before = stock_before
        movement.stock_after = compute_stock_after(values["movement_type"], stock_before, quantity)
        movement.unit_price = float(values.get("unit_price") or 0)
        movement.unit_cost = float(values.get("unit_cost") or 0)
        movement.movement_value = round2(quantity * movement.unit_cost)
        movement.date = values.get("date") or utcnow()
        movement.user_id = user_id
        if self.tenant_id is not None:
            movement.tenant_id = self.tenant_id
        return movement

    # PUBLIC_INTERFACE
    async def register(
        self, values: Dict[str, Any], *, user_id: Optional[UUID] = None, allow_negative: bool = True
    ) -> StockMovement:
        """
        Record a movement against the current balance of its product/warehouse.

        Raises:
            BusinessRuleError: an outbound movement would leave negative stock
                and `allow_negative` is false.
        """
        before = await self.current_stock(values["product_id"], values["warehouse_id"])
        movement = self._build(values, before, user_id)
        if not allow_negative and values["movement_type"] in OUTBOUND_TYPES and movement.stock_after < 0:
            raise BusinessRuleError(
                "Insufficient stock for this movement",
                details={"stock": before, "requested": float(values["quantity"])},
            )
        movement = await self.repo.save(movement)
        logger.info(
            "Stock movement %s registered: product=%s warehouse=%s qty=%s stock %s -> %s",
            movement.movement_type, movement.product_id, movement.warehouse_id,
            movement.quantity, movement.stock_before, movement.stock_after,
        )
        return movement

    # PUBLIC_INTERFACE
    async def annul(
        self, movement_id: UUID, reason: str, *, user_id: Optional[UUID] = None
    ) -> Tuple[StockMovement, StockMovement]:
        """
        Annul a movement and book its inverse; returns (original, reversal).

        Raises:
            NotFoundError: unknown movement.
            InvalidStateError: already annulled, or the movement is itself a reversal.
        """
        original = await self.get(movement_id)
        if original.annulled:
            raise InvalidStateError("Stock movement is already annulled")
        if original.reverses_id is not None:
            raise InvalidStateError("A reversal movement cannot be annulled")

        before = await self.current_stock(original.product_id, original.warehouse_id)
        values = {field: getattr(original, field) for field in _REVERSAL_FIELDS}
        reverse_type = inverse_type(original.movement_type)
        values.update(
            movement_type=reverse_type,
            quantity=float(original.stock_before) if reverse_type == REGULARIZATION else float(original.quantity),
            reason=f"Annulment: {reason}",
            notes=f"Reversal of movement {original.id}",
            reverses_id=original.id,
        )
        reversal = self._build(values, before, user_id)

        original.annulled = True
        original.annulled_at = utcnow()
        original.annul_reason = reason
        self.session.add_all([original, reversal])
        await self.session.commit()
        await self.session.refresh(original)
        await self.session.refresh(reversal)
        logger.info("Stock movement %s annulled (reversal %s): %s", original.id, reversal.id, reason)
        return original, reversal

    # PUBLIC_INTERFACE
    async def history(
        self,
        *,
        page: int,
        limit: int,
        sort_by: Optional[str] = None,
        sort_order: str = "desc",
        **filters: Any,
    ) -> Tuple[List[StockMovement], int]:
        stmt = self.repo.filtered(**filters)
        if sort_by:
            stmt = self.repo.apply_order(stmt, sort_by, sort_order)
        else:
            stmt = stmt.order_by(StockMovement.date.desc(), StockMovement.created_at.desc())
        return await self.repo.paginate(stmt, page=page, limit=limit)

    # PUBLIC_INTERFACE
    async def stock_info(self, product_id: UUID, warehouse_id: UUID) -> Dict[str, Any]:
        return {
            "product_id": product_id,
            "warehouse_id": warehouse_id,
            "stock": await self.current_stock(product_id, warehouse_id),
            "last_cost": await self.last_cost(product_id),
            "average_cost": await self.average_cost(product_id),
        }

    # PUBLIC_INTERFACE
    async def valuation(self, warehouse_id: Optional[UUID] = None) -> Dict[str, Any]:
        """Current stock valued at average cost, one row per product and warehouse."""
        latest = await self.repo.latest_per_product_warehouse(warehouse_id)
        costs: Dict[UUID, float] = {}
        rows = []
        for m in latest:
            if m.product_id not in costs:
                costs[m.product_id] = await self.average_cost(m.product_id)
            stock = float(m.stock_after)
            rows.append(
                {
                    "product_id": m.product_id,
                    "product_code": m.product_code,
                    "product_name": m.product_name,
                    "warehouse_id": m.warehouse_id,
                    "stock": stock,
                    "average_cost": costs[m.product_id],
                    "value": round2(stock * costs[m.product_id]),
                }
            )
        return {"rows": rows, "total_value": round2(sum(r["value"] for r in rows))}
