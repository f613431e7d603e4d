"""Utility for keeping secrets and injected control characters out of logs."""

import re
from typing import Any

REDACTED = "***REDACTED***"

# Query parameters whose values must never be written to logs
SENSITIVE_PARAMS = ("sso", "sig", "token", "secret", "password")


def sanitize_for_log(value: Any) -> str:
    """Neutralize line breaks and tabs so a value cannot forge log lines."""
    text = str(value)
    text = text.replace("\r\n", " ").replace("\r", " ").replace("\n", " ")
    return text.replace("\t", " ")


def redact_url(url: str) -> str:
    """
    Redact sensitive query parameter values in a URL.

    "https://forum.example.com/session/sso_provider?sso=bm9u...&sig=ab12"
    becomes
    "https://forum.example.com/session/sso_provider?sso=***REDACTED***&sig=***REDACTED***"

    Args:
        url: URL to redact

    Returns:
        Redacted URL, safe for logging
    """
    pattern = r"([?&](?:" + "|".join(SENSITIVE_PARAMS) + r")=)[^&\s#]*"
    return sanitize_for_log(re.sub(pattern, rf"\1{REDACTED}", url, flags=re.IGNORECASE))
