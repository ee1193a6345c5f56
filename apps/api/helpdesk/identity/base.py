from typing import Protocol


class IdentityProvider(Protocol):
    """Credential authority. Subjects are opaque, stable string identifiers."""

    def verify(self, credential: str) -> str:
        """Return the subject for a valid credential, raise ``Unauthenticated`` otherwise."""
        ...

    def create_account(
        self,
        email: str,
        password: str,
        display_name: str,
        phone_number: str | None = None,
    ) -> str: ...

    def set_claims(self, subject: str, claims: dict) -> None: ...

    def disable(self, subject: str) -> None: ...

    def issue_token(self, email: str, password: str) -> str: ...
