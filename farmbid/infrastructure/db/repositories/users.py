from __future__ import annotations

from typing import Iterable

from farmbid.domain.models import User

from ..connection import iso_utcnow
from .base import BaseRepository
import sqlite3


class DuplicateUserError(Exception):
    """Raised when attempting to register an email that already exists."""


class UserRepository(BaseRepository):
    def add(
        self,
        name: str,
        *,
        token_hash: str,
        phone: str | None = None,
        email: str | None = None,
        farm_name: str | None = None,
    ) -> int:
        try:
            user_id = self._execute_insert(
                """
                INSERT INTO users (name, phone, email, farm_name, token_hash, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (name, phone, email, farm_name, token_hash, iso_utcnow()),
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateUserError(f"User with email '{email}' already exists") from exc
        self._commit()
        return user_id

    def get(self, user_id: int) -> dict[str, object] | None:
        return self._fetch_one_as_dict(
            "SELECT id, name, phone, email, farm_name FROM users WHERE id = ?",
            (user_id,),
        )

    def get_many(self, user_ids: Iterable[int]) -> dict[int, User]:
        """Return the users among ``user_ids`` keyed by id; unknown ids are skipped."""
        ids = sorted(set(user_ids))
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        rows = self._fetch_all_as_dicts(
            f"SELECT id, name, phone, email, farm_name FROM users WHERE id IN ({placeholders})",
            tuple(ids),
        )
        return {int(row["id"]): User.from_dict(row) for row in rows}

    def get_by_token_hash(self, token_hash: str) -> dict[str, object] | None:
        return self._fetch_one_as_dict(
            "SELECT id, name, phone, email, farm_name FROM users WHERE token_hash = ?",
            (token_hash,),
        )

    def count_sellers(self) -> int:
        """Number of users with at least one auction or product listed."""
        return int(
            self._fetch_scalar(
                """
                SELECT COUNT(*) FROM users u
                WHERE EXISTS (SELECT 1 FROM auctions a WHERE a.seller_id = u.id)
                   OR EXISTS (SELECT 1 FROM products p WHERE p.seller_id = u.id)
                """
            )
            or 0
        )
