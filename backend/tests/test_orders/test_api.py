"""
Test suite for the order and finance HTTP endpoints.

Exercises authentication, request validation and the mapping of workflow
errors to HTTP status codes through the full application stack.
"""

import uuid

import pytest
from fastapi import status
from httpx import AsyncClient
from jose import jwt
from sqlalchemy import update

from marketplace.core.config import get_settings
from marketplace.core.security import create_access_token
from marketplace.database.models.order import Order
from marketplace.database.models.user import UserRole, UserStatus
from marketplace.services.orders.repository import OrderRepository
from tests.conftest import auth_headers

ORDERS = "/api/v1/orders"


@pytest.fixture
async def users(make_user, make_product):
    """One committed user per role plus a product."""
    created = {role.value: await make_user(role) for role in UserRole}
    created["product"] = await make_product()
    return created


async def place_inventory_order(client: AsyncClient, users) -> dict:
    response = await client.post(
        ORDERS,
        json={
            "order_type": "inventory",
            "product_id": str(users["product"].id),
            "quantity": 5,
            "supplier_id": str(users["supplier"].id),
        },
        headers=auth_headers(users["artisan"]),
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


async def place_customer_order(client: AsyncClient, users) -> dict:
    response = await client.post(
        ORDERS,
        json={
            "product_id": str(users["product"].id),
            "quantity": 1,
            "total_price": "100.00",
            "delivery_address": "Stall 4, Gikomba",
        },
        headers=auth_headers(users["customer"]),
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


class TestAuthentication:
    """Test bearer token handling."""

    async def test_missing_token(self, async_client: AsyncClient) -> None:
        response = await async_client.get(f"{ORDERS}/driver")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_invalid_token(self, async_client: AsyncClient) -> None:
        response = await async_client.get(
            f"{ORDERS}/driver", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_unknown_user(self, async_client: AsyncClient, users) -> None:
        token = create_access_token(uuid.uuid4(), UserRole.DRIVER.value)

        response = await async_client.get(
            f"{ORDERS}/driver", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_subject_not_a_user_id(self, async_client: AsyncClient) -> None:
        settings = get_settings()
        token = jwt.encode(
            {"sub": "user-42"}, settings.secret_key, algorithm=settings.jwt_algorithm
        )

        response = await async_client.get(
            f"{ORDERS}/driver", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_inactive_user(self, async_client: AsyncClient, make_user) -> None:
        suspended = await make_user(UserRole.DRIVER, status=UserStatus.SUSPENDED)

        response = await async_client.get(
            f"{ORDERS}/driver", headers=auth_headers(suspended)
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestOrderEndpoints:
    """Test order creation and lifecycle routes."""

    async def test_create_inventory_order(self, async_client: AsyncClient, users) -> None:
        order = await place_inventory_order(async_client, users)

        assert order["order_status"] == "pending"
        assert order["payment_status"] == "pending"
        assert order["artisan_id"] == str(users["artisan"].id)
        assert order["supplier"]["role"] == "supplier"
        assert order["product"]["name"] == "Woven Basket"

    async def test_create_missing_supplier(
        self, async_client: AsyncClient, users
    ) -> None:
        response = await async_client.post(
            ORDERS,
            json={
                "order_type": "inventory",
                "product_id": str(users["product"].id),
                "quantity": 5,
            },
            headers=auth_headers(users["artisan"]),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "supplier_id" in response.json()["detail"]

    async def test_get_order(self, async_client: AsyncClient, users) -> None:
        order = await place_customer_order(async_client, users)

        response = await async_client.get(
            f"{ORDERS}/{order['id']}", headers=auth_headers(users["customer"])
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["delivery_address"] == "Stall 4, Gikomba"

    async def test_get_unknown_order(self, async_client: AsyncClient, users) -> None:
        response = await async_client.get(
            f"{ORDERS}/{uuid.uuid4()}", headers=auth_headers(users["admin"])
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_supplier_cannot_mark_received(
        self, async_client: AsyncClient, users
    ) -> None:
        order = await place_inventory_order(async_client, users)
        supplier = auth_headers(users["supplier"])
        await async_client.put(f"{ORDERS}/mark-delivered/{order['id']}", headers=supplier)

        response = await async_client.put(
            f"{ORDERS}/update-status/{order['id']}",
            json={"status": "received"},
            headers=supplier,
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_received_before_delivery_conflicts(
        self, async_client: AsyncClient, users
    ) -> None:
        order = await place_inventory_order(async_client, users)

        response = await async_client.put(
            f"{ORDERS}/mark-received/{order['id']}",
            headers=auth_headers(users["artisan"]),
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    async def test_unknown_status_conflicts(
        self, async_client: AsyncClient, users
    ) -> None:
        order = await place_customer_order(async_client, users)

        response = await async_client.put(
            f"{ORDERS}/update-status/{order['id']}",
            json={"status": "vanished"},
            headers=auth_headers(users["customer"]),
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    async def test_concurrent_update_conflicts(
        self, async_client: AsyncClient, users, session_factory, monkeypatch
    ) -> None:
        order = await place_inventory_order(async_client, users)
        save = OrderRepository.save

        async def save_after_competing_write(repository, pending):
            async with session_factory() as other:
                await other.execute(
                    update(Order)
                    .where(Order.id == pending.id)
                    .values(version=Order.version + 1)
                )
                await other.commit()
            return await save(repository, pending)

        monkeypatch.setattr(OrderRepository, "save", save_after_competing_write)

        response = await async_client.put(
            f"{ORDERS}/mark-delivered/{order['id']}",
            headers=auth_headers(users["supplier"]),
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    async def test_unknown_product_is_rejected(
        self, async_client: AsyncClient, users
    ) -> None:
        response = await async_client.post(
            ORDERS,
            json={"product_id": str(uuid.uuid4()), "quantity": 1, "total_price": "5"},
            headers=auth_headers(users["customer"]),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_finance_approve_customer_order_conflicts(
        self, async_client: AsyncClient, users
    ) -> None:
        order = await place_customer_order(async_client, users)

        response = await async_client.put(
            f"{ORDERS}/finance/{order['id']}/approve",
            headers=auth_headers(users["finance"]),
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    async def test_assign_driver(self, async_client: AsyncClient, users) -> None:
        order = await place_customer_order(async_client, users)

        response = await async_client.put(
            f"{ORDERS}/assign-driver/{order['id']}",
            json={"driver_id": str(users["driver"].id)},
            headers=auth_headers(users["supervisor"]),
        )
        listed = await async_client.get(
            f"{ORDERS}/driver", headers=auth_headers(users["driver"])
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["driver"]["id"] == str(users["driver"].id)
        assert listed.json()["total_count"] == 1

    async def test_update_payment_status(
        self, async_client: AsyncClient, users
    ) -> None:
        order = await place_customer_order(async_client, users)

        ok = await async_client.put(
            f"{ORDERS}/update-payment-status/{order['id']}",
            json={"payment_status": "paid"},
            headers=auth_headers(users["customer"]),
        )
        bad = await async_client.put(
            f"{ORDERS}/update-payment-status/{order['id']}",
            json={"payment_status": "bounced"},
            headers=auth_headers(users["customer"]),
        )

        assert ok.json()["payment_status"] == "paid"
        assert bad.status_code == status.HTTP_400_BAD_REQUEST

    async def test_inventory_lifecycle(self, async_client: AsyncClient, users) -> None:
        order = await place_inventory_order(async_client, users)
        order_id = order["id"]

        delivered = await async_client.put(
            f"{ORDERS}/mark-delivered/{order_id}",
            headers=auth_headers(users["supplier"]),
        )
        assert delivered.json()["order_status"] == "delivered"

        received = await async_client.put(
            f"{ORDERS}/update-status/{order_id}",
            json={"status": "received"},
            headers=auth_headers(users["artisan"]),
        )
        assert received.json()["order_status"] == "received"
        assert received.json()["payment_status"] == "paid"

        invoiced = await async_client.put(
            f"{ORDERS}/{order_id}/payment",
            json={"amount": "480.00", "notes": "Invoice 12"},
            headers=auth_headers(users["supplier"]),
        )
        assert invoiced.status_code == status.HTTP_200_OK
        assert invoiced.json()["payment_status"] == "pending"

        paid = await async_client.post(
            f"{ORDERS}/finance/{order_id}/payment",
            json={"amount": "500"},
            headers=auth_headers(users["finance"]),
        )
        body = paid.json()
        assert body["order_status"] == "completed"
        assert body["payment_status"] == "paid"
        assert float(body["total_price"]) == 500.0

    async def test_finance_reject_with_reason(
        self, async_client: AsyncClient, users
    ) -> None:
        order = await place_inventory_order(async_client, users)

        response = await async_client.put(
            f"{ORDERS}/finance/{order['id']}/reject",
            json={"reason": "Duplicate request"},
            headers=auth_headers(users["finance"]),
        )

        assert response.json()["order_status"] == "rejected"
        assert response.json()["notes"] == "Duplicate request"

    async def test_mark_complete_requires_supervisor(
        self, async_client: AsyncClient, users
    ) -> None:
        order = await place_customer_order(async_client, users)

        denied = await async_client.put(
            f"{ORDERS}/{order['id']}/mark-complete",
            headers=auth_headers(users["customer"]),
        )
        done = await async_client.put(
            f"{ORDERS}/{order['id']}/mark-complete",
            headers=auth_headers(users["supervisor"]),
        )

        assert denied.status_code == status.HTTP_403_FORBIDDEN
        assert done.json()["order_status"] == "completed"


class TestListEndpoints:
    """Test role-scoped listings."""

    async def test_staff_list(self, async_client: AsyncClient, users) -> None:
        await place_customer_order(async_client, users)
        await place_inventory_order(async_client, users)

        staff = await async_client.get(ORDERS, headers=auth_headers(users["admin"]))
        filtered = await async_client.get(
            ORDERS,
            params={"order_type": "inventory"},
            headers=auth_headers(users["admin"]),
        )
        customer = await async_client.get(
            ORDERS, headers=auth_headers(users["customer"])
        )

        assert staff.json()["total_count"] == 2
        assert filtered.json()["total_count"] == 1
        assert customer.status_code == status.HTTP_403_FORBIDDEN

    async def test_supervisor_list(self, async_client: AsyncClient, users) -> None:
        await place_customer_order(async_client, users)

        supervisor = await async_client.get(
            f"{ORDERS}/supervisor", headers=auth_headers(users["supervisor"])
        )
        finance = await async_client.get(
            f"{ORDERS}/supervisor", headers=auth_headers(users["finance"])
        )

        assert supervisor.json()["total_count"] == 1
        assert finance.status_code == status.HTTP_403_FORBIDDEN

    async def test_user_orders(self, async_client: AsyncClient, users) -> None:
        await place_customer_order(async_client, users)
        customer_id = users["customer"].id

        own = await async_client.get(
            f"{ORDERS}/user/{customer_id}", headers=auth_headers(users["customer"])
        )
        other = await async_client.get(
            f"{ORDERS}/user/{customer_id}", headers=auth_headers(users["artisan"])
        )

        assert own.json()["total_count"] == 1
        assert other.status_code == status.HTTP_403_FORBIDDEN

    async def test_inventory_list(self, async_client: AsyncClient, users) -> None:
        await place_inventory_order(async_client, users)

        response = await async_client.get(
            f"{ORDERS}/inventory", headers=auth_headers(users["supplier"])
        )

        assert response.json()["total_count"] == 1

    async def test_directory_lists(self, async_client: AsyncClient, users) -> None:
        headers = auth_headers(users["artisan"])

        drivers = await async_client.get(f"{ORDERS}/drivers/list", headers=headers)
        suppliers = await async_client.get(f"{ORDERS}/suppliers/list", headers=headers)

        assert [d["id"] for d in drivers.json()] == [str(users["driver"].id)]
        assert [s["role"] for s in suppliers.json()] == ["supplier"]


class TestFinanceEndpoints:
    """Test finance dashboard routes."""

    async def test_report(self, async_client: AsyncClient, users) -> None:
        await place_customer_order(async_client, users)
        await place_inventory_order(async_client, users)

        response = await async_client.get(
            "/api/v1/finance/report", headers=auth_headers(users["finance"])
        )

        body = response.json()
        assert response.status_code == status.HTTP_200_OK
        assert body["total_orders"] == 2
        assert float(body["total_value"]) == 100.0
        assert body["by_order_type"] == {"customer": 1, "inventory": 1}

    async def test_report_forbidden(self, async_client: AsyncClient, users) -> None:
        response = await async_client.get(
            "/api/v1/finance/report", headers=auth_headers(users["supplier"])
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_finance_orders(self, async_client: AsyncClient, users) -> None:
        await place_inventory_order(async_client, users)

        response = await async_client.get(
            "/api/v1/finance/orders", headers=auth_headers(users["admin"])
        )

        assert response.json()["total_count"] == 1
