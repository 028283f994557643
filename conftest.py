"""Global pytest configuration."""

import os

# Set test settings before any imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-at-least-32-bytes")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")
