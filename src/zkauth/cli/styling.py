"""Terminal styling for zkauth CLI output.

Headers and labels are cyan bold, outcomes carry a mark (green check or
red cross), warnings are yellow, empty states are dim. Account-specific
helpers keep list and detail views consistent.
"""

from __future__ import annotations

__all__ = [
    "style_account_status",
    "style_dim",
    "style_error",
    "style_header",
    "style_label",
    "style_secret",
    "style_success",
    "style_warning",
]

import click

_CHECK = "✓"
_CROSS = "✗"


def style_header(title: str) -> str:
    """``--- Account acc-1 ---`` in cyan bold."""
    return click.style(f"--- {title} ---", fg="cyan", bold=True)


def style_label(label: str) -> str:
    return click.style(f"{label}:", fg="cyan", bold=True)


def style_success(message: str) -> str:
    return click.style(f"{_CHECK} {message}", fg="green")


def style_error(message: str) -> str:
    """Red cross-marked message; callers echo it with ``err=True``."""
    return click.style(f"{_CROSS} {message}", fg="red")


def style_warning(message: str) -> str:
    return click.style(f"Warning: {message}", fg="yellow", bold=True)


def style_dim(message: str) -> str:
    return click.style(message, dim=True)


def style_account_status(active: bool) -> str:
    """Green ``active`` or dim red ``inactive`` badge for account rows."""
    if active:
        return click.style("active", fg="green")
    return click.style("inactive", fg="red", dim=True)


def style_secret(value: str, visible: int = 4) -> str:
    """Mask a secret for display, keeping a short prefix and the length.

    Example:
        >>> style_secret("k" * 40)
        'kkkk...(40 chars)'
    """
    if len(value) <= visible:
        return "*" * len(value)
    return f"{value[:visible]}...({len(value)} chars)"
