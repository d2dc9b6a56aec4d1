"""Order Export — CSV backup of orders removed by an admin purge."""

import csv
import io

EXPORT_COLUMNS = (
    "id", "order_number", "customer_email", "customer_phone", "customer_name",
    "total_amount_minor", "currency", "status", "delivery_status",
    "email_delivery_status", "gateway_order_id", "gateway_payment_id",
    "created_at", "paid_at",
)


def orders_to_csv(rows: list[dict]) -> str:
    """Serialize order rows; missing values become empty cells."""
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer, fieldnames=EXPORT_COLUMNS, extrasaction="ignore", lineterminator="\n",
    )
    writer.writeheader()
    for row in rows:
        writer.writerow({
            key: "" if row.get(key) is None else str(row.get(key))
            for key in EXPORT_COLUMNS
        })
    return buffer.getvalue()
