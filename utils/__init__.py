"""Utility modules for the reminder worker."""

from .log_sanitizer import sanitize_log, sanitize_for_log, mask_user_id

__all__ = ["sanitize_log", "sanitize_for_log", "mask_user_id"]
