"""
Configuration for the collaborator layer that builds the community context.
The repositories, guard and lifecycle manager never read this module; build_context passes values in.
"""

import os

# Debug flag
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Service scheduling
SERVICE_SLOT_HOURS = float(os.getenv("SERVICE_SLOT_HOURS", "2"))
SERVICE_KEY_SUFFIX_MAX = int(os.getenv("SERVICE_KEY_SUFFIX_MAX", "1000"))

# Uniqueness checks and writes share one critical section when true
STRICT_UNIQUENESS = os.getenv("STRICT_UNIQUENESS", "true").lower() == "true"

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Version string
VERSION = "1.0.0"


def get_log_level():
    """Effective log level; DEBUG mode forces DEBUG."""
    return "DEBUG" if DEBUG else LOG_LEVEL.upper()


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    if LOG_LEVEL.upper() not in VALID_LOG_LEVELS:
        issues.append(f"Invalid LOG_LEVEL: {LOG_LEVEL}")

    if SERVICE_SLOT_HOURS <= 0:
        issues.append("SERVICE_SLOT_HOURS must be > 0")

    if SERVICE_KEY_SUFFIX_MAX < 1:
        issues.append("SERVICE_KEY_SUFFIX_MAX must be >= 1")

    return issues
