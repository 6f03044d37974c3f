"""Marketplace participant as resolved by the identity provider."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    id: int
    name: str
    phone: str | None = None
    email: str | None = None
    farm_name: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        return cls(
            id=int(data["id"]),
            name=str(data.get("name") or ""),
            phone=data.get("phone"),
            email=data.get("email"),
            farm_name=data.get("farm_name"),
        )


__all__ = ["User"]
