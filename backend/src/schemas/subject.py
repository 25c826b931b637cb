"""Authenticated subject representation."""
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Subject:
    """
    The identity a collection belongs to.

    Only `id` is used for ownership checks; `email` and `full_name` exist for
    display purposes.
    """

    id: str
    email: str | None = None
    full_name: str | None = None
    # Bearer token for the remote store; never printed or compared
    access_token: str | None = field(default=None, repr=False, compare=False)

    @property
    def display_name(self) -> str:
        """First name if known, else the email's local part, else "User"."""
        if self.full_name and self.full_name.strip():
            return self.full_name.split()[0]
        if self.email:
            return self.email.split("@")[0]
        return "User"
