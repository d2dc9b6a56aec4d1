"""Message Format — verifies download URLs and the WhatsApp / email bodies."""

from storefront.core.message_format import (
    DownloadLink,
    build_download_links,
    build_download_url,
    format_email_html,
    format_whatsapp_message,
)


def test_download_url_shape():
    assert build_download_url("https://shop.example.com/", "abc-123") == (
        "https://shop.example.com/api/v1/downloads?token=abc-123"
    )


def test_download_url_encodes_token():
    url = build_download_url("https://shop.example.com", "a b+c")
    assert url.endswith("?token=a+b%2Bc")


def test_one_link_per_product():
    links = build_download_links(
        "https://shop.example.com", [("Guide", "t1"), ("Pack", "t2")],
    )
    assert [link.name for link in links] == ["Guide", "Pack"]
    assert links[1].url.endswith("token=t2")


def test_whatsapp_message_lists_every_link():
    links = [
        DownloadLink("Guide", "https://x/api/v1/downloads?token=t1"),
        DownloadLink("Pack", "https://x/api/v1/downloads?token=t2"),
    ]
    body = format_whatsapp_message("Test Store", "ORD-20261018-000001", "Asha", links, 7, 3)
    assert "Hi Asha!" in body
    assert "1. *Guide*" in body
    assert "2. *Pack*" in body
    assert "token=t2" in body
    assert "ORD-20261018-000001" in body
    assert "7 days (3 downloads max)" in body


def test_whatsapp_message_without_name():
    body = format_whatsapp_message("S", "ORD-1", None, [], 7, 3)
    assert "Hi there!" in body


def test_email_html_escapes_customer_input():
    links = [DownloadLink("<b>Guide</b>", "https://x/api/v1/downloads?token=t1&a=b")]
    html = format_email_html("Store", "ORD-1", "<script>", links, 7, 3)
    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "&lt;b&gt;Guide&lt;/b&gt;" in html
    assert "token=t1&amp;a=b" in html
