"""Logging filters that scrub sensitive content."""

from __future__ import annotations

import logging
import re

_SENSITIVE_PATTERN = re.compile(
    r"(Authorization: Bearer\s+[\w\.-]+"
    r"|Stripe-Signature:\s*\S+"
    r"|client_secret\"?\s*[:=]\s*\"?[\w\-]+\"?"
    r"|\b(?:sk|rk)_(?:live|test)_[0-9A-Za-z]+"
    r"|\bwhsec_[0-9A-Za-z]+"
    r"|pi_[0-9A-Za-z]+_secret_[0-9A-Za-z]+)",
    re.IGNORECASE,
)


def scrub(message: str) -> str:
    return _SENSITIVE_PATTERN.sub("**REDACTED**", message)


class SensitiveFilter(logging.Filter):
    """Replace gateway secrets and bearer tokens in log messages."""

    def filter(
        self, record: logging.LogRecord
    ) -> bool:  # pragma: no cover - logging side effect
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


__all__ = ["SensitiveFilter", "scrub"]
