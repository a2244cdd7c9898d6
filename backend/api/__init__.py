"""API route handlers."""
from . import open_banking, webhooks

__all__ = ["open_banking", "webhooks"]
