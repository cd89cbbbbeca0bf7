"""Secret and PII masking for log output.

Masks emails, bearer/session tokens, provider API keys and inline password
assignments in stdout/file logs. The database keeps the real values.
"""

from __future__ import annotations

import re

# Email pattern
_EMAIL_RE = re.compile(
    r"\b([a-zA-Z0-9._%+-])([a-zA-Z0-9._%+-]*)@([a-zA-Z0-9.-]+)\.([a-zA-Z]{2,})\b"
)

# Signed session tokens: three base64url segments
_JWT_RE = re.compile(r"\beyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+")

# Authorization header values
_BEARER_RE = re.compile(r"(Bearer\s+)(\S+)", re.IGNORECASE)

# Anthropic / OpenAI style API keys
_API_KEY_RE = re.compile(r"\b(sk-(?:ant-)?)([A-Za-z0-9_-]{8,})")

# password=..., "password": "..."
_PASSWORD_RE = re.compile(
    r"""((?:password|passwd|password_hash)["']?\s*[:=]\s*["']?)([^\s"',}]+)""",
    re.IGNORECASE,
)


def sanitize_email(text: str) -> str:
    """Mask emails: user@example.com → u***@***.com."""

    def _mask(m: re.Match[str]) -> str:
        return f"{m.group(1)}***@***.{m.group(4)}"

    return _EMAIL_RE.sub(_mask, text)


def sanitize_token(text: str) -> str:
    """Mask bearer values and signed tokens entirely."""
    text = _BEARER_RE.sub(lambda m: f"{m.group(1)}***", text)
    return _JWT_RE.sub("***", text)


def sanitize_api_key(text: str) -> str:
    """Mask API keys: sk-ant-abcdef123456 → sk-ant-***3456."""

    def _mask(m: re.Match[str]) -> str:
        return f"{m.group(1)}***{m.group(2)[-4:]}"

    return _API_KEY_RE.sub(_mask, text)


def sanitize_password(text: str) -> str:
    """Mask inline password values: password=hunter2 → password=***."""
    return _PASSWORD_RE.sub(lambda m: f"{m.group(1)}***", text)


def sanitize_pii(text: str) -> str:
    """Sanitize all secrets and PII in text for logging."""
    text = sanitize_token(text)
    text = sanitize_api_key(text)
    text = sanitize_password(text)
    text = sanitize_email(text)
    return text
