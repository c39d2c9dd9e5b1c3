"""Root conftest — shared test configuration."""

import os

# Ensure tests don't accidentally use real credentials or a real database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STRIPE_API_KEY", "sk_test_fake_key")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("BOARD_WEBHOOK_SECRET", "board-test-secret")
os.environ.setdefault("MONDAY_API_KEY", "monday-test-key")
os.environ.setdefault("MONDAY_BOARD_ID", "1234567890")
os.environ.setdefault("HIREHOP_API_TOKEN", "hirehop-test-token")
os.environ.setdefault("JOB_TOKEN_SECRET", "job-token-test-secret")
os.environ.setdefault("LOG_FORMAT", "text")
