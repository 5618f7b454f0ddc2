# src/taskdump/remote/auth.py

from __future__ import annotations


class StaticTokenAuth:
    """
    AuthProvider backed by a pre-issued bearer token (e.g. TASKDUMP_API_TOKEN).

    Obtaining and refreshing the token is the auth provider's job, not ours.
    """

    def __init__(self, token: str | None = None) -> None:
        self._token = (token or "").strip() or None

    def is_authenticated(self) -> bool:
        return self._token is not None

    def get_credential(self) -> str | None:
        return self._token

    def sign_out(self) -> None:
        self._token = None
