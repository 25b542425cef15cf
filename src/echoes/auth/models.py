"""User and credential records."""

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class User:
    """A local account."""

    name: str
    email: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        return cls(**data)


@dataclass(frozen=True)
class UserCredentials:
    """Stored login record: email, salted password digest and the user."""

    email: str
    password_hash: str
    salt: str
    user: User

    def to_dict(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "password_hash": self.password_hash,
            "salt": self.salt,
            "user": self.user.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserCredentials":
        return cls(
            email=data["email"],
            password_hash=data["password_hash"],
            salt=data["salt"],
            user=User.from_dict(data["user"]),
        )
