"""Logging filters that scrub credentials from log output."""

from __future__ import annotations

import logging
import re

_SENSITIVE_PATTERN = re.compile(
    r"(Authorization: Bearer\s+[\w\.-]+"
    r"|\w*token\"\s*:\s*\"[^\"]+\""
    r"|\w*password\"\s*:\s*\"[^\"]+\""
    r"|[?&]token=[\w-]+"
    r"|client_secret\"\s*:\s*\"[^\"]+\")",
    re.IGNORECASE,
)
REDACTED = "**REDACTED**"


def scrub(text: str) -> str:
    return _SENSITIVE_PATTERN.sub(REDACTED, text)


class SensitiveFilter(logging.Filter):
    """Replace bearer tokens, passwords and client secrets with a marker."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = scrub(record.msg)
        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    key: scrub(value) if isinstance(value, str) else value
                    for key, value in record.args.items()
                }
            else:
                record.args = tuple(
                    scrub(arg) if isinstance(arg, str) else arg for arg in record.args
                )
        return True


def install_sensitive_filter(
    logger_names: tuple[str, ...] = ("uvicorn", "uvicorn.access", "uvicorn.error", ""),
) -> None:
    """Attach a single :class:`SensitiveFilter` to each named logger."""
    for name in logger_names:
        target = logging.getLogger(name)
        if not any(isinstance(flt, SensitiveFilter) for flt in target.filters):
            target.addFilter(SensitiveFilter())


__all__ = ["SensitiveFilter", "install_sensitive_filter", "scrub"]
