from __future__ import annotations

import json

from farmbid.domain.models import NotificationMessage

from ..connection import iso_utcnow
from .base import BaseRepository


class NotificationRepository(BaseRepository):
    """Outbox of seller notifications awaiting delivery/reading."""

    def add(self, message: NotificationMessage) -> int:
        notification_id = self._execute_insert(
            """
            INSERT INTO notifications (recipient_id, kind, title, body, payload, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                message.recipient_id,
                message.kind.value,
                message.title,
                message.body,
                json.dumps(message.payload),
                iso_utcnow(),
            ),
        )
        self._commit()
        return notification_id

    def list_for_recipient(
        self, recipient_id: int, *, unread_only: bool = False, limit: int = 50
    ) -> list[dict[str, object]]:
        query = """
            SELECT id, recipient_id, kind, title, body, payload, is_read, created_at
            FROM notifications
            WHERE recipient_id = ?
        """
        params: list[object] = [recipient_id]
        if unread_only:
            query += " AND is_read = 0"
        query += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(limit)
        rows = self._fetch_all_as_dicts(query, tuple(params))
        for row in rows:
            row["payload"] = json.loads(row["payload"]) if row.get("payload") else {}
            row["is_read"] = bool(row["is_read"])
        return rows

    def mark_read(self, notification_id: int, recipient_id: int) -> bool:
        cur = self._execute(
            "UPDATE notifications SET is_read = 1 WHERE id = ? AND recipient_id = ?",
            (notification_id, recipient_id),
        )
        self._commit()
        return cur.rowcount > 0
