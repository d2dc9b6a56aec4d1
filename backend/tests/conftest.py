"""Root conftest — shared test configuration."""

import os

# Ensure tests never reach real providers or a real database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("RAZORPAY_TEST_MODE", "true")
os.environ.setdefault("WHATSAPP_ACCESS_TOKEN", "dummy-token")
os.environ.setdefault("RESEND_API_KEY", "test-key")
os.environ.setdefault("LOG_FORMAT", "text")
