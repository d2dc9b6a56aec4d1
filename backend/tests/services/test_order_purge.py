"""Order Purge — verifies oldest-first deletion with a CSV backup.

Invariants:
    - Only the requested number of oldest orders is removed
    - Items and download tokens of purged orders go with them
    - The CSV backup lists exactly the removed orders
"""

import csv
import io
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select, update

from storefront.core.errors import ValidationError
from storefront.infrastructure.razorpay_client import RazorpayClient
from storefront.models.download_token import DownloadToken
from storefront.models.order import Order
from storefront.models.order_item import OrderItem
from storefront.services.order_ledger import OrderLedger
from storefront.services.order_purge import MAX_PURGE_RECORDS, OrderPurger
from storefront.services.token_issuer import TokenIssuer


@pytest.fixture
async def three_orders(test_db, store_config, cart_lines):
    ledger = OrderLedger(test_db, store_config, RazorpayClient("k", "s", test_mode=True))
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    created = []
    for day in range(3):
        order = await ledger.create_order(cart_lines, f"c{day}@example.com", "9876543210")
        await test_db.execute(
            update(Order).where(Order.id == order.order_id)
            .values(created_at=base + timedelta(days=day)),
        )
        created.append(order)
    await test_db.commit()
    await TokenIssuer(test_db, store_config).issue_for_order(created[0].order_id)
    return created


async def _count(db, model):
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


async def test_purges_oldest_first(test_db, three_orders, read_db):
    result = await OrderPurger(test_db).purge_oldest(2)

    assert result.deleted_count == 2
    rows = list(csv.DictReader(io.StringIO(result.backup_csv)))
    assert [r["order_number"] for r in rows] == [
        three_orders[0].order_number, three_orders[1].order_number,
    ]
    assert rows[0]["customer_email"] == "c0@example.com"
    async with read_db() as db:
        remaining = (await db.execute(select(Order.id))).scalars().all()
        assert remaining == [three_orders[2].order_id]
        assert await _count(db, OrderItem) == 2
        assert await _count(db, DownloadToken) == 0


async def test_purge_more_than_exists(test_db, three_orders):
    result = await OrderPurger(test_db).purge_oldest(10)
    assert result.deleted_count == 3


async def test_purge_empty_store_returns_header_only(test_db):
    result = await OrderPurger(test_db).purge_oldest(5)
    assert result.deleted_count == 0
    assert result.backup_csv.splitlines()[0].startswith("id,order_number")


@pytest.mark.parametrize("count", [0, -1, MAX_PURGE_RECORDS + 1])
async def test_purge_count_bounds(test_db, count):
    with pytest.raises(ValidationError):
        await OrderPurger(test_db).purge_oldest(count)
