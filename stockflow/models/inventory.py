"""Inventory record data models.

An InventoryRecord is one validated row of uploaded inventory data: a single
item stocked at a single store and replenished from a single warehouse. The
same item may appear for many stores and warehouses, so none of the
identifiers is unique on its own.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InventoryRecord(BaseModel):
    """
    Validated inventory row.

    Records are immutable and strict: numeric fields must already be numbers
    (a string such as "12" is rejected, never converted) and out-of-range values
    are rejected rather than clamped.

    Attributes:
        item_id: Item (SKU) identifier
        store_id: Store that stocks the item
        warehouse_id: Warehouse that replenishes the store
        demand: Demand in units per period (>= 0)
        order_cost: Fixed cost per order placed (> 0)
        holding_cost: Cost of holding one unit for one period (> 0)
        inventory_level: Current on-hand units (>= 0)
    """
    item_id: str = Field(..., min_length=1, description="Item identifier")
    store_id: str = Field(..., min_length=1, description="Store identifier")
    warehouse_id: str = Field(..., min_length=1, description="Warehouse identifier")
    demand: float = Field(..., ge=0, allow_inf_nan=False, description="Units per period")
    order_cost: float = Field(..., gt=0, allow_inf_nan=False, description="Cost per order")
    holding_cost: float = Field(..., gt=0, allow_inf_nan=False, description="Cost per unit per period")
    inventory_level: float = Field(..., ge=0, allow_inf_nan=False, description="On-hand units")

    model_config = ConfigDict(strict=True, frozen=True)

    @field_validator('item_id', 'store_id', 'warehouse_id')
    @classmethod
    def no_whitespace_only(cls, v: str) -> str:
        """Reject identifiers that are only whitespace."""
        if not v.strip():
            raise ValueError("identifier cannot be whitespace only")
        return v

    def __str__(self) -> str:
        return f"{self.item_id} @ {self.store_id} (from {self.warehouse_id})"


class EOQRecord(InventoryRecord):
    """
    Inventory record enriched with its Economic Order Quantity.

    Re-running the EOQ computation produces a new EOQRecord; an existing one is
    never updated in place.

    Attributes:
        eoq: Economic Order Quantity, rounded half-to-even (>= 0)
    """
    eoq: int = Field(..., ge=0, description="Economic Order Quantity (units)")

    @classmethod
    def from_record(cls, record: InventoryRecord, eoq: int) -> "EOQRecord":
        """Create an EOQRecord from a plain record and its computed EOQ."""
        return cls(**record.model_dump(exclude={'eoq'}), eoq=eoq)

    def base_record(self) -> InventoryRecord:
        """Return the record without its EOQ enrichment."""
        return InventoryRecord(**self.model_dump(exclude={'eoq'}))
