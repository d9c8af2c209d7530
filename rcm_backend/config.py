"""Shared configuration for the RCM claim core.

This module centralizes environment variable access and default values
to prevent drift between modules.
"""

import os

# Practice settings (scoring, aging buckets, correction policy)
RCM_SETTINGS_PATH = os.getenv("RCM_SETTINGS_PATH", "./data/practice_settings.yaml")

# Rule catalog; empty means the packaged default catalog
RCM_RULES_PATH = os.getenv("RCM_RULES_PATH", "")

# Audit trail database
AUDIT_DB_PATH = os.getenv("AUDIT_DB_PATH", "./data/audit.db")

# Clearinghouse; empty URL disables submission
CLEARINGHOUSE_URL = os.getenv("CLEARINGHOUSE_URL", "")
CLEARINGHOUSE_API_KEY = os.getenv("CLEARINGHOUSE_API_KEY", "")
CLEARINGHOUSE_TIMEOUT = float(os.getenv("CLEARINGHOUSE_TIMEOUT", "30"))
CLEARINGHOUSE_MAX_RETRIES = int(os.getenv("CLEARINGHOUSE_MAX_RETRIES", "3"))
CLEARINGHOUSE_RETRY_DELAY = float(os.getenv("CLEARINGHOUSE_RETRY_DELAY", "1"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173"
    ).split(",")
    if origin.strip()
]

# Rate limiting on workflow endpoints
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
RATE_LIMIT_WRITE = os.getenv("RATE_LIMIT_WRITE", "120/minute")
