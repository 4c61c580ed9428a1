"""
Client-side search over cached lists.

Filters normalized orders, customers and workers by a case-insensitive
substring match on their display fields. An empty or whitespace query
returns the list unchanged. DataContext holds one SearchFilter per session
and exposes the result through ``ResourceView.filtered``.
"""

from __future__ import annotations

from typing import Any, Iterable

from stitch.types import Resource

ORDER_FIELDS = ("id", "customerName", "status", "workerName")
CUSTOMER_FIELDS = ("id", "name", "email", "phone")
WORKER_FIELDS = ("id", "name", "email", "phone", "specialization")

SEARCH_FIELDS: dict[Resource, tuple[str, ...]] = {
    Resource.ORDERS: ORDER_FIELDS,
    Resource.CUSTOMERS: CUSTOMER_FIELDS,
    Resource.WORKERS: WORKER_FIELDS,
}


def _matches(record: dict[str, Any], fields: Iterable[str], query: str) -> bool:
    for name in fields:
        value = record.get(name)
        if value and query in str(value).lower():
            return True
    return False


class SearchFilter:
    """Holds the active query and applies it to cached resources."""

    def __init__(self, query: str = "") -> None:
        self.query = query

    @property
    def active(self) -> bool:
        return bool(self.query.strip())

    def set_query(self, query: str | None) -> None:
        self.query = query or ""

    def clear(self) -> None:
        self.query = ""

    def _filter(
        self, records: list[dict[str, Any]], fields: Iterable[str]
    ) -> list[dict[str, Any]]:
        if not self.active:
            return records
        query = self.query.strip().lower()
        return [r for r in records if _matches(r, fields, query)]

    def apply(self, resource: str | Resource, records: Any) -> Any:
        """Filter a searchable resource's records; anything else passes through."""
        fields = SEARCH_FIELDS.get(Resource.parse(resource))
        if fields is None or not isinstance(records, list):
            return records
        return self._filter(records, fields)

    def filter_orders(self, orders: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return self._filter(orders, ORDER_FIELDS)

    def filter_customers(self, customers: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return self._filter(customers, CUSTOMER_FIELDS)

    def filter_workers(self, workers: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return self._filter(workers, WORKER_FIELDS)
