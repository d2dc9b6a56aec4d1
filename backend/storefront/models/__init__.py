"""ORM Models — SQLAlchemy declarative models for all storefront entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Order is the aggregate root; items and download tokens are owned by it

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs (ADR: standard SQLAlchemy pattern)
"""

from storefront.models.product import Product  # noqa: F401
from storefront.models.order import Order  # noqa: F401
from storefront.models.order_item import OrderItem  # noqa: F401
from storefront.models.download_token import DownloadToken  # noqa: F401
from storefront.models.order_number_ticket import OrderNumberTicket  # noqa: F401
from storefront.models.setting import Setting  # noqa: F401
