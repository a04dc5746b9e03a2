"""
Username and password generation for issued users.
"""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass

from .constants import (
    DISPLAY_NAME_LEN,
    MIN_PASSWORD_LENGTH,
    PASSWORD_LENGTH,
    PASSWORD_PREFIX,
    ROLE_NAME_LEN,
    USERNAME_LEN,
    USERNAME_PREFIX,
    USERNAME_RANDOM_LEN,
    USERNAME_SEPARATOR,
)
from .types import UsernameConfig

ALPHANUMERIC = string.ascii_letters + string.digits


def random_alphanumeric(length: int) -> str:
    """Return ``length`` cryptographically random letters and digits."""
    return "".join(secrets.choice(ALPHANUMERIC) for _ in range(length))


@dataclass(frozen=True)
class CredentialGenerator:
    """
    Produces usernames and passwords for issued users.

    Usernames look like ``v_<display>_<role>_<random>_<unixtime>``: the
    display and role fragments are truncated to their limits and omitted when
    empty, and the whole name is truncated to ``username_len`` (0 disables the
    limit). Passwords start with ``A1a-`` so they always contain an upper-case
    letter, a lower-case letter, a digit and a symbol.
    """

    display_name_len: int = DISPLAY_NAME_LEN
    role_name_len: int = ROLE_NAME_LEN
    username_len: int = USERNAME_LEN
    separator: str = USERNAME_SEPARATOR
    password_length: int = PASSWORD_LENGTH

    def __post_init__(self) -> None:
        if self.password_length < MIN_PASSWORD_LENGTH:
            raise ValueError(f"password_length must be at least {MIN_PASSWORD_LENGTH}, got {self.password_length}")

    def generate_username(self, config: UsernameConfig) -> str:
        parts = [USERNAME_PREFIX]
        display_name = config.display_name[: self.display_name_len]
        if display_name:
            parts.append(display_name)
        role_name = config.role_name[: self.role_name_len]
        if role_name:
            parts.append(role_name)
        parts.append(random_alphanumeric(USERNAME_RANDOM_LEN))
        parts.append(str(int(time.time())))

        username = self.separator.join(parts)
        if self.username_len > 0:
            username = username[: self.username_len]
        return username

    def generate_password(self) -> str:
        return PASSWORD_PREFIX + random_alphanumeric(self.password_length - len(PASSWORD_PREFIX))


__all__ = ["CredentialGenerator", "random_alphanumeric"]
