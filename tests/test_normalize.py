"""
Tests for payload normalizers and date formatting.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from stitch.normalize import (
    aggregate_order_stats,
    apply_customer_stats,
    format_order_id,
    normalize_customers,
    normalize_orders,
    normalize_workers,
)
from stitch.utils.dates import format_date


class TestFormatDate:
    """Test YYYY-MM-DD formatting."""

    def test_iso_string_with_z(self) -> None:
        assert format_date("2024-03-05T22:10:00Z") == "2024-03-05"

    def test_offset_converted_to_utc(self) -> None:
        assert format_date("2024-03-05T23:30:00-02:00") == "2024-03-06"

    def test_epoch_millis(self) -> None:
        assert format_date(1_700_000_000_000) == "2023-11-14"

    def test_datetime_and_date_objects(self) -> None:
        assert format_date(datetime(2024, 1, 2, tzinfo=timezone.utc)) == "2024-01-02"
        assert format_date(date(2024, 1, 2)) == "2024-01-02"

    def test_missing_or_invalid_uses_default(self) -> None:
        fallback = date(2020, 1, 1)
        assert format_date(None, default=fallback) == "2020-01-01"
        assert format_date("not a date", default=fallback) == "2020-01-01"


class TestNormalizeCustomers:
    """Test customer normalization."""

    def test_nested_user_fields(self) -> None:
        raw = {
            "customerId": 4,
            "createdAt": "2024-06-01T10:00:00Z",
            "user": {
                "userId": 40,
                "name": "Ravi",
                "email": "ravi@example.com",
                "contactNumber": "98765",
                "profilePicture": "pic.png",
            },
            "measurements": {"pantLength": 40, "seatHip": 38, "kurtaSleeveLength": 22},
        }

        [customer] = normalize_customers({"data": [raw]})

        assert customer["id"] == 4
        assert customer["userId"] == 40
        assert customer["name"] == "Ravi"
        assert customer["phone"] == "98765"
        assert customer["joinDate"] == "2024-06-01"
        assert customer["avatar"] == "pic.png"
        assert customer["totalOrders"] == 0
        assert customer["totalSpent"] == 0
        assert customer["measurements"]["pant"]["length"] == 40
        assert customer["measurements"]["pant"]["seatHips"] == 38
        assert customer["measurements"]["kurta"]["sleeve"] == 22
        assert customer["measurements"]["coat"]["chest"] == ""
        assert customer["measurements"]["custom"] == ""

    def test_flat_fields_and_defaults(self) -> None:
        [customer] = normalize_customers([{"id": 5, "name": "Meena", "phone": "1"}])

        assert customer["id"] == 5
        assert customer["name"] == "Meena"
        assert customer["phone"] == "1"
        assert customer["avatar"] is None
        assert set(customer["measurements"]) == {
            "pant", "shirt", "coat", "kurta", "dhoti", "custom",
        }

    def test_non_list_payload(self) -> None:
        assert normalize_customers(None) == []
        assert normalize_customers({"message": "ok"}) == []


class TestNormalizeOrders:
    """Test order normalization."""

    def test_order_fields(self) -> None:
        raw = {
            "orderId": 7,
            "customer": {"customerId": 3, "name": "Asha"},
            "createdAt": "2024-02-29T08:00:00Z",
            "deadline": "2024-03-10",
            "status": "IN_PROGRESS",
            "totalPrice": 1500,
            "advancePayment": 500,
            "additionalNotes": "Rush",
        }

        [order] = normalize_orders([raw])

        assert order["id"] == "ORD007"
        assert order["customerId"] == 3
        assert order["customerName"] == "Asha"
        assert order["orderDate"] == "2024-02-29"
        assert order["deliveryDate"] == "2024-03-10"
        assert order["status"] == "in_progress"
        assert order["totalAmount"] == 1500
        assert order["paidAmount"] == 500
        assert order["balanceAmount"] == 1000
        assert order["notes"] == "Rush"
        assert order["customer"] == raw["customer"]

    def test_order_defaults(self) -> None:
        [order] = normalize_orders([{"orderId": 1234}])

        assert order["id"] == "ORD1234"
        assert order["customerName"] == "Unknown Customer"
        assert order["status"] == "pending"
        assert order["items"] == []
        assert order["balanceAmount"] == 0
        assert order["priority"] == "medium"

    def test_format_order_id(self) -> None:
        assert format_order_id(1) == "ORD001"
        assert format_order_id(None) == ""


class TestNormalizeWorkers:
    """Test worker normalization."""

    def test_wrapped_payload(self) -> None:
        payload = {"data": [{"workerId": 2, "name": "Asha", "workType": "Stitching"}]}

        [worker] = normalize_workers(payload)

        assert worker["id"] == 2
        assert worker["specialization"] == "Stitching"
        assert worker["experience"] == 0
        assert worker["status"] == "active"

    def test_default_specialization(self) -> None:
        [worker] = normalize_workers([{"id": 3, "name": "Ben"}])
        assert worker["id"] == 3
        assert worker["specialization"] == "General"


class TestCustomerAggregates:
    """Test the customer/order join."""

    def test_aggregate_and_apply(self) -> None:
        orders = normalize_orders([
            {"orderId": 1, "customer": {"customerId": 1}, "totalPrice": 100},
            {"orderId": 2, "customerId": "1", "totalPrice": 50},
            {"orderId": 3, "customerId": 2},
            {"orderId": 4, "totalPrice": 10},
        ])

        stats = aggregate_order_stats(orders)
        customers = apply_customer_stats([{"id": 1}, {"id": 2}, {"id": 3}], stats)

        assert stats == {
            "1": {"totalOrders": 2, "totalSpent": 150},
            "2": {"totalOrders": 1, "totalSpent": 0},
        }
        assert customers == [
            {"id": 1, "totalOrders": 2, "totalSpent": 150},
            {"id": 2, "totalOrders": 1, "totalSpent": 0},
            {"id": 3, "totalOrders": 0, "totalSpent": 0},
        ]

    def test_raw_orders_use_total_price(self) -> None:
        stats = aggregate_order_stats([{"customerId": 9, "totalPrice": 70}])
        assert stats == {"9": {"totalOrders": 1, "totalSpent": 70}}

    def test_apply_does_not_mutate_input(self) -> None:
        customers = [{"id": 1, "totalOrders": 0}]
        apply_customer_stats(customers, {"1": {"totalOrders": 5, "totalSpent": 1}})
        assert customers == [{"id": 1, "totalOrders": 0}]
