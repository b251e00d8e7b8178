"""Root conftest: shared test configuration."""

import os

# Ensure tests never use real credentials or a real database
os.environ.setdefault("ANTHROPIC_API_KEY", "sk-ant-test-fake-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-0123456789abcdef")
os.environ.setdefault("MESSAGE_SIGNING_SECRET", "test-signing-secret")
os.environ.setdefault("LOG_FORMAT", "text")
