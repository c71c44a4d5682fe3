from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PreviewTestUser:
    """Credentials for a test account used to log in during previews.

    The password may be given directly or through ``password_env``, the name of
    an environment variable read when the password is needed.
    """

    email: str
    password: Optional[str] = None
    password_env: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.password and not self.password_env:
            raise ValueError('Password cannot be empty')

    @property
    def resolved_password(self) -> str:
        if self.password:
            return self.password
        value = os.environ.get(self.password_env or '')
        if not value:
            raise ValueError(
                f"Environment variable {self.password_env} is not set for test user {self.email}"
            )
        return value

    def __repr__(self) -> str:
        if self.password:
            masked = '*' * len(self.password)
        else:
            masked = f'${self.password_env}'
        return f'PreviewTestUser(email: {self.email}, password: {masked})'

    __str__ = __repr__
