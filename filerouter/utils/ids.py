"""Identifier helpers."""

import uuid


def new_record_id() -> str:
    """Generate a unique id for a routing record."""
    return uuid.uuid4().hex
