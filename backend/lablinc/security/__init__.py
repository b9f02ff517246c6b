"""Security helpers for authorization and logging."""
