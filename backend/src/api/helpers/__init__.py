"""API helper utilities."""
from api.helpers.sync_errors import raise_for_sync_error

__all__ = [
    "raise_for_sync_error",
]
