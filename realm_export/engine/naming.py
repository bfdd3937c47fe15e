"""
Secret Naming — Derive the secret name and key for a realm.

Patterns use positional placeholders: ``{0}`` is the realm name and, in
the name pattern, ``{1}`` is today's date as ``YYYYMMDD``. Any other
brace expression is left untouched.

Because the name embeds the date, a run on a later day creates a new
secret instead of overwriting the previous day's export.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Callable, Sequence, Tuple

from ..models.config import DEFAULT_SECRET_KEY_PATTERN, DEFAULT_SECRET_NAME_PATTERN

_PLACEHOLDER = re.compile(r"\{(\d+)\}")


def substitute(pattern: str, values: Sequence[str]) -> str:
    """Replace ``{n}`` with ``values[n]``; unknown placeholders stay verbatim."""

    def replace(match: re.Match) -> str:
        index = int(match.group(1))
        if index < len(values):
            return values[index]
        return match.group(0)

    return _PLACEHOLDER.sub(replace, pattern)


class SecretNameFormatter:
    """Formats (secret_name, secret_key) pairs from the configured patterns."""

    def __init__(
        self,
        name_pattern: str = DEFAULT_SECRET_NAME_PATTERN,
        key_pattern: str = DEFAULT_SECRET_KEY_PATTERN,
        today: Callable[[], date] = date.today,
    ):
        self.name_pattern = name_pattern
        self.key_pattern = key_pattern
        self._today = today

    def format(self, realm_name: str) -> Tuple[str, str]:
        stamp = self._today().strftime("%Y%m%d")
        secret_name = substitute(self.name_pattern, [realm_name, stamp])
        secret_key = substitute(self.key_pattern, [realm_name])
        return secret_name, secret_key
