"""Infrastructure domain — database layer and project settings."""

from rigcheck.infrastructure.config import (
    Settings,
    default_settings,
    load_settings,
)
from rigcheck.infrastructure.db import (
    SCHEMA_VERSION,
    create_schema,
    get_meta,
    open_db,
    set_meta,
)

__all__ = [
    "SCHEMA_VERSION",
    "Settings",
    "create_schema",
    "default_settings",
    "get_meta",
    "load_settings",
    "open_db",
    "set_meta",
]
