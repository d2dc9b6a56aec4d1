"""Message Formatting — download links, WhatsApp text, and email HTML.

Invariants:
    - One download URL per product, in the order given
    - Customer-supplied text (names) is HTML-escaped in email bodies
    - Messages state the link policy (expiry days, max downloads)

Design Decisions:
    - Pure string builders: dispatcher tests assert on exact previews without IO
    - Store name is a parameter so the same templates serve every deployment
"""

from dataclasses import dataclass
from html import escape
from urllib.parse import urlencode

EMAIL_SUBJECT = "Your Download is Ready! 🎉"
DOWNLOAD_PATH = "/api/v1/downloads"


@dataclass(frozen=True)
class DownloadLink:
    name: str
    url: str


def build_download_url(public_base_url: str, token: str) -> str:
    return f"{public_base_url.rstrip('/')}{DOWNLOAD_PATH}?{urlencode({'token': token})}"


def build_download_links(
    public_base_url: str, products: list[tuple[str, str]],
) -> list[DownloadLink]:
    """products: (name, token) pairs."""
    return [
        DownloadLink(name=name, url=build_download_url(public_base_url, token))
        for name, token in products
    ]


def format_whatsapp_message(
    store_name: str,
    order_ref: str,
    customer_name: str | None,
    links: list[DownloadLink],
    ttl_days: int,
    max_downloads: int,
) -> str:
    products_list = "\n\n".join(
        f"{i}. *{link.name}*\n   📥 {link.url}"
        for i, link in enumerate(links, start=1)
    )
    return (
        "🎉 *Your Download is Ready!*\n\n"
        f"Hi {customer_name or 'there'}! 👋\n\n"
        f"Thank you for your purchase from {store_name}. "
        "Your digital products are ready:\n\n"
        f"{products_list}\n\n"
        f"📋 *Order:* {order_ref}\n\n"
        f"⏰ Links expire in {ttl_days} days ({max_downloads} downloads max).\n\n"
        "Need help? Reply to this message!"
    )


def format_email_html(
    store_name: str,
    order_ref: str,
    customer_name: str | None,
    links: list[DownloadLink],
    ttl_days: int,
    max_downloads: int,
) -> str:
    rows = "".join(
        "<tr><td style=\"padding: 12px 0; border-bottom: 1px solid #e5e7eb;\">"
        f"<strong>{escape(link.name)}</strong><br />"
        f"<a href=\"{escape(link.url)}\" style=\"color: #2563eb;\">Download Now →</a>"
        "</td></tr>"
        for link in links
    )
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"></head>"
        "<body style=\"font-family: sans-serif; background-color: #f3f4f6;\">"
        "<div style=\"max-width: 600px; margin: 0 auto; padding: 40px 20px;\">"
        "<h1>🎉 Your Download is Ready!</h1>"
        f"<p>Hi {escape(customer_name or 'there')},</p>"
        "<p>Thank you for your purchase! Your digital products are ready for download.</p>"
        f"<table style=\"width: 100%;\">{rows}</table>"
        f"<p><strong>Order:</strong> {escape(order_ref)}</p>"
        f"<p>Download links expire in {ttl_days} days and can be used up to "
        f"{max_downloads} times. If you have any issues, please contact our support team.</p>"
        f"<p style=\"color: #9ca3af; font-size: 12px;\">{escape(store_name)}</p>"
        "</div></body></html>"
    )
