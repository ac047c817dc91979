# Overview: Service-layer operations for inventory; flock stock items, valuation and low-stock alerts.

"""
Inventory

Items are a current-state snapshot per flock (no ledger). Their value
(quantity * cost_per_unit_cents) counts toward the flock's expenses in
every financial period.

Every add/update/delete is pushed to the owner's live channel and
recorded as a notification. When LOW_STOCK_NOTIFICATIONS is on, an item
dropping to or below its reorder level raises a warning notification.
"""

from __future__ import annotations

from flask import current_app

from ..broadcast import publish_event
from ..extensions import db
from ..models import InventoryItem
from ..validation import ModelValidationPolicy, validate_payload
from .notification_service import notify
from .tenant_service import scoped_get, require_flock_owned


INVENTORY_POLICY = ModelValidationPolicy(
    writable_fields={"flock_id", "item_name", "quantity", "reorder_level", "cost_per_unit_cents"},
    required_on_create={"flock_id", "item_name", "quantity", "cost_per_unit_cents"},
    non_negative={"quantity", "reorder_level", "cost_per_unit_cents"},
)


def list_items(user_id: int, flock_id: int | None = None, low_stock_only: bool = False) -> list[InventoryItem]:
    query = db.session.query(InventoryItem).filter(InventoryItem.user_id == user_id)
    if flock_id is not None:
        query = query.filter(InventoryItem.flock_id == flock_id)
    if low_stock_only:
        query = query.filter(InventoryItem.quantity <= InventoryItem.reorder_level)
    return query.order_by(InventoryItem.item_name.asc(), InventoryItem.id.asc()).all()


def get_item(user_id: int, item_id: int) -> InventoryItem:
    return scoped_get(InventoryItem, item_id, user_id, label="Inventory item")


def total_value_cents(user_id: int) -> int:
    return sum(item.value_cents for item in list_items(user_id))


def _check_low_stock(item: InventoryItem, was_low: bool) -> None:
    """Warn once per crossing, not on every edit while already low."""
    if not current_app.config.get("LOW_STOCK_NOTIFICATIONS", True):
        return
    if item.needs_reorder and not was_low:
        notify(
            item.user_id,
            "Low Stock",
            f"'{item.item_name}' is down to {item.quantity} (reorder level {item.reorder_level}).",
            type="warning",
            url="/inventory",
        )


def create_item(user_id: int, payload: dict) -> InventoryItem:
    patch = validate_payload(model=InventoryItem, payload=payload, policy=INVENTORY_POLICY, partial=False)
    require_flock_owned(patch["flock_id"], user_id)

    item = InventoryItem(user_id=user_id, **patch)
    db.session.add(item)
    db.session.commit()

    publish_event("inventory_added", "inventory", item.to_dict(), user_id=user_id)
    notify(
        user_id,
        "New Inventory Item Added",
        f"Item '{item.item_name}' has been added to your inventory.",
        url="/inventory",
    )
    _check_low_stock(item, was_low=False)
    return item


def update_item(user_id: int, item_id: int, payload: dict) -> InventoryItem:
    item = get_item(user_id, item_id)
    patch = validate_payload(model=InventoryItem, payload=payload, policy=INVENTORY_POLICY, partial=True)
    if "flock_id" in patch:
        require_flock_owned(patch["flock_id"], user_id)

    was_low = item.needs_reorder
    for k, v in patch.items():
        setattr(item, k, v)
    db.session.commit()

    publish_event("inventory_updated", "inventory", item.to_dict(), user_id=user_id)
    notify(
        user_id,
        "Inventory Item Updated",
        f"Item '{item.item_name}' has been updated in your inventory.",
        url="/inventory",
    )
    _check_low_stock(item, was_low=was_low)
    return item


def delete_item(user_id: int, item_id: int) -> None:
    item = get_item(user_id, item_id)
    name = item.item_name
    db.session.delete(item)
    db.session.commit()

    publish_event("inventory_deleted", "inventory", {"id": item_id}, user_id=user_id)
    notify(
        user_id,
        "Inventory Item Deleted",
        f"Item '{name}' has been removed from your inventory.",
        url="/inventory",
    )
