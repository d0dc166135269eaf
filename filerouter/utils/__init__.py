"""Utility helpers for filerouter."""

from filerouter.utils.ids import new_record_id
from filerouter.utils.locks import KeyedLock
from filerouter.utils.logging import configure_logging

__all__ = ["new_record_id", "KeyedLock", "configure_logging"]
