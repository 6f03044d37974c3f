"""Caller identity: user registration and bearer-token verification.

Tokens are random strings handed out once at registration; only their
SHA-256 digest is stored.
"""

from __future__ import annotations

import hashlib
import secrets
from typing import Any, Mapping, Protocol

from farmbid.domain.errors import Unauthenticated, UserNotFound, ValidationError
from farmbid.domain.models import User
from farmbid.infrastructure.db.repositories import DuplicateUserError, UserRepository
from farmbid.services.base import BaseService
from farmbid.services.dto import (
    RegisteredUserDTO,
    UserCreateDTO,
    UserDTO,
    parse_model,
)

TOKEN_BYTES = 32


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


class IdentityProvider(Protocol):
    def verify(self, token: str | None) -> User:
        """Resolve ``token`` to a user or raise ``Unauthenticated``."""
        ...


class TokenIdentityProvider(BaseService):
    """Verifies bearer tokens against the ``users`` table."""

    def verify(self, token: str | None) -> User:
        if not token or not token.strip():
            raise Unauthenticated("Access denied. No token provided.")
        row = self._with_connection(
            lambda conn: UserRepository(conn).get_by_token_hash(hash_token(token.strip()))
        )
        if row is None:
            raise Unauthenticated("Invalid token.")
        return User.from_dict(row)


class UserService(BaseService):
    def register(self, data: UserCreateDTO | Mapping[str, Any]) -> RegisteredUserDTO:
        """Create a user and return it with a freshly issued token."""
        dto = parse_model(UserCreateDTO, data)
        token = generate_token()

        def _register(conn) -> User:
            repo = UserRepository(conn)
            try:
                user_id = repo.add(
                    dto.name,
                    token_hash=hash_token(token),
                    phone=dto.phone,
                    email=dto.email,
                    farm_name=dto.farm_name,
                )
            except DuplicateUserError as exc:
                raise ValidationError.for_field("email", str(exc)) from exc
            return User(
                id=user_id,
                name=dto.name,
                phone=dto.phone,
                email=dto.email,
                farm_name=dto.farm_name,
            )

        user = self._with_connection(_register)
        self._logger.info("Registered user %s", user.id)
        return RegisteredUserDTO(user=UserDTO.from_domain(user), token=token)

    def get_user(self, user_id: int) -> UserDTO:
        row = self._with_connection(lambda conn: UserRepository(conn).get(user_id))
        if row is None:
            raise UserNotFound(user_id)
        return UserDTO.from_domain(User.from_dict(row))
