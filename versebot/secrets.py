"""Credential lookup for the messaging transport.

The bot token may be given inline in the config, through an environment
variable, or in a local file kept outside the repository.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional


class SecretError(ValueError):
    """Raised when a required credential cannot be found."""


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def read_secret_file(path: str) -> Optional[str]:
    """Return the stripped file content, or None if the file is empty."""
    p = Path(path).expanduser()
    try:
        return _clean(p.read_text(encoding="utf-8"))
    except OSError:
        # Only the file name: absolute paths stay out of logs.
        raise SecretError(f"Cannot read secret file {p.name}")


def resolve_secret(
    *,
    value: Optional[str] = None,
    env: Optional[str] = None,
    file_path: Optional[str] = None,
    required: bool = True,
    name: str = "secret",
) -> Optional[str]:
    """Resolve a credential from an inline value, env var or file, in that order."""
    resolved = _clean(value) or (_clean(os.getenv(env)) if env else None)
    if resolved:
        return resolved

    file_error: Optional[SecretError] = None
    if file_path:
        try:
            resolved = read_secret_file(file_path)
        except SecretError as exc:
            file_error = exc
        if resolved:
            return resolved

    if not required:
        return None
    if file_error is not None:
        raise file_error

    sources = [f"env={env}"] if env else []
    if file_path:
        sources.append(f"file={Path(file_path).name}")
    where = f" (looked in {', '.join(sources)})" if sources else ""
    raise SecretError(f"Missing required {name}{where}")


def mask_secret(secret: Optional[str], keep_end: int = 4) -> str:
    """Masked form of a secret that is safe to log."""
    if not secret:
        return ""
    hidden = max(len(secret) - keep_end, 0)
    if hidden == 0:
        return "*" * len(secret)
    return "*" * hidden + secret[-keep_end:]
