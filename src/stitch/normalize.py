"""
Payload normalizers.

Converts raw Backend API payloads into the canonical shapes consumers
render: renamed fields, missing sub-fields defaulted to "" or 0 and dates
formatted as YYYY-MM-DD. Also holds the customer/order aggregate join used
by customer enrichment.

Backend payloads use camelCase keys; normalized records keep camelCase
since they are handed to the UI unchanged.
"""

from __future__ import annotations

from typing import Any, Iterable

from stitch.utils.dates import format_date

Record = dict[str, Any]

# (group, field, source keys checked in order)
MEASUREMENT_FIELDS: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("pant", "length", ("pantLength",)),
    ("pant", "waist", ("pantWaist",)),
    ("pant", "seatHips", ("seatHips", "seatHip")),
    ("pant", "thigh", ("thigh",)),
    ("pant", "knee", ("knee",)),
    ("pant", "bottomOpening", ("bottomOpening", "bottom")),
    ("pant", "thighCircumference", ("thighCircumference",)),
    ("shirt", "length", ("shirtLength",)),
    ("shirt", "chest", ("chest",)),
    ("shirt", "waist", ("shirtWaist",)),
    ("shirt", "shoulder", ("shoulder",)),
    ("shirt", "sleeveLength", ("sleeveLength",)),
    ("shirt", "armhole", ("armhole",)),
    ("shirt", "collar", ("collar",)),
    ("coat", "length", ("coatLength",)),
    ("coat", "chest", ("coatChest",)),
    ("coat", "waist", ("coatWaist",)),
    ("coat", "shoulder", ("coatShoulder",)),
    ("coat", "sleeveLength", ("coatSleeveLength",)),
    ("coat", "armhole", ("coatArmhole",)),
    ("kurta", "length", ("kurtaLength",)),
    ("kurta", "chest", ("kurtaChest",)),
    ("kurta", "waist", ("kurtaWaist",)),
    ("kurta", "seatHips", ("kurtaSeatHips", "kurtaHip")),
    ("kurta", "flare", ("kurtaFlare",)),
    ("kurta", "shoulder", ("kurtaShoulder",)),
    ("kurta", "armhole", ("kurtaArmhole",)),
    ("kurta", "sleeve", ("kurtaSleeve", "kurtaSleeveLength")),
    ("kurta", "bottomOpening", ("kurtaBottomOpening",)),
    ("kurta", "frontNeck", ("kurtaFrontNeck",)),
    ("kurta", "backNeck", ("kurtaBackNeck",)),
    ("dhoti", "length", ("dhotiLength",)),
    ("dhoti", "waist", ("dhotiWaist",)),
    ("dhoti", "hip", ("dhotiHip",)),
    ("dhoti", "sideLength", ("sideLength",)),
    ("dhoti", "foldLength", ("foldLength",)),
)


def first(*values: Any, default: Any = None) -> Any:
    """Return the first truthy value, else default."""
    for value in values:
        if value:
            return value
    return default


def _mapping(value: Any) -> Record:
    return value if isinstance(value, dict) else {}


def unwrap_list(payload: Any) -> list[Any]:
    """Extract a list from a payload that may be wrapped as {"data": [...]}."""
    if isinstance(payload, dict):
        payload = payload.get("data")
    if isinstance(payload, list):
        return payload
    return []


def normalize_measurements(raw: Any) -> Record:
    """Group flat measurement fields into garment sections."""
    source = _mapping(raw)
    measurements: Record = {}
    for group, field_name, keys in MEASUREMENT_FIELDS:
        section = measurements.setdefault(group, {})
        section[field_name] = first(*(source.get(k) for k in keys), default="")
    measurements["custom"] = source.get("customMeasurements") or ""
    return measurements


def normalize_customer(raw: Record) -> Record:
    user = _mapping(raw.get("user"))
    return {
        "id": first(raw.get("customerId"), raw.get("id")),
        "userId": first(user.get("userId"), raw.get("userId")),
        "name": first(user.get("name"), raw.get("name")),
        "email": first(user.get("email"), raw.get("email")),
        "phone": first(user.get("contactNumber"), raw.get("phone")),
        "address": "",
        "joinDate": format_date(raw.get("createdAt")),
        "totalOrders": 0,
        "totalSpent": 0,
        "measurements": normalize_measurements(raw.get("measurements")),
        "avatar": user.get("profilePicture") or None,
    }


def normalize_customers(payload: Any) -> list[Record]:
    return [normalize_customer(_mapping(item)) for item in unwrap_list(payload)]


def format_order_id(order_id: Any) -> str:
    """Display ID for an order, e.g. 7 -> "ORD007"."""
    if order_id is None:
        return ""
    return f"ORD{str(order_id).zfill(3)}"


def normalize_order(raw: Record) -> Record:
    customer = _mapping(raw.get("customer"))
    total = raw.get("totalPrice") or 0
    paid = first(raw.get("paidAmount"), raw.get("advancePayment"), default=0)
    status = raw.get("status")
    return {
        "id": format_order_id(raw.get("orderId")),
        "orderId": raw.get("orderId"),
        "customerId": first(customer.get("customerId"), raw.get("customerId")),
        "customerName": first(
            customer.get("name"), raw.get("customerName"), default="Unknown Customer"
        ),
        "orderDate": format_date(raw.get("createdAt")),
        "deliveryDate": raw.get("deadline"),
        "status": str(status).lower() if status else "pending",
        "priority": "medium",
        "items": raw.get("items") or [],
        "totalAmount": total,
        "paidAmount": paid,
        "balanceAmount": total - paid,
        "measurements": raw.get("measurements") or {},
        "notes": first(raw.get("notes"), raw.get("additionalNotes"), default=""),
        "assignedWorker": None,
        "workerName": None,
        "assignmentMode": "individual",
        "customer": raw.get("customer"),
    }


def normalize_orders(payload: Any) -> list[Record]:
    return [normalize_order(_mapping(item)) for item in unwrap_list(payload)]


def normalize_worker(raw: Record) -> Record:
    return {
        "id": first(raw.get("workerId"), raw.get("id")),
        "name": raw.get("name"),
        "email": raw.get("email"),
        "phone": raw.get("contactNumber"),
        "specialization": raw.get("workType") or "General",
        "experience": raw.get("experience") or 0,
        "status": "active",
        "ratings": raw.get("ratings") or None,
        "assignedOrders": 0,
        "completedOrders": 0,
        "performance": 0,
    }


def normalize_workers(payload: Any) -> list[Record]:
    return [normalize_worker(_mapping(item)) for item in unwrap_list(payload)]


def identity(payload: Any) -> Any:
    return payload


def _customer_key(value: Any) -> str | None:
    return str(value) if value not in (None, "") else None


def aggregate_order_stats(orders: Iterable[Record]) -> dict[str, Record]:
    """Count orders and sum their value per customer.

    Orders without a customer identity are skipped. Accepts normalized
    orders (totalAmount) as well as raw ones (totalPrice).

    Returns:
        Mapping of customer id (as string) to totalOrders/totalSpent.
    """
    stats: dict[str, Record] = {}
    for order in orders:
        customer = _mapping(order.get("customer"))
        key = _customer_key(first(customer.get("customerId"), order.get("customerId")))
        if key is None:
            continue
        entry = stats.setdefault(key, {"totalOrders": 0, "totalSpent": 0})
        entry["totalOrders"] += 1
        entry["totalSpent"] += first(
            order.get("totalAmount"), order.get("totalPrice"), default=0
        )
    return stats


def apply_customer_stats(
    customers: Iterable[Record], stats: dict[str, Record]
) -> list[Record]:
    """Return copies of customers with totalOrders/totalSpent filled in."""
    enriched: list[Record] = []
    for customer in customers:
        customer_stats = stats.get(_customer_key(customer.get("id")) or "", {})
        enriched.append({
            **customer,
            "totalOrders": customer_stats.get("totalOrders", 0),
            "totalSpent": customer_stats.get("totalSpent", 0),
        })
    return enriched
