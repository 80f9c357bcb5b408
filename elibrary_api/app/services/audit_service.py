"""
Audit service for recording and querying catalog actions.

This module writes audit events to the ``audit_logs`` table and
retrieves them with filters and pagination.  Services record every
create, update and delete they perform.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from ..core.db import get_connection
from ..core.errors import PersistenceError

logger = logging.getLogger(__name__)


class AuditService:
    """Writes and reads audit log entries."""

    def __init__(self, database_path: str) -> None:
        self.database_path = database_path

    async def log(
        self,
        user_id: Optional[int],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Insert a new audit record.

        Parameters
        ----------
        user_id : Optional[int]
            ID of the user performing the action.  ``None`` for
            anonymous actions such as registration.
        action : str
            "create", "update" or "delete".
        object_type : str
            Type of object affected ("book", "user").
        object_id : Optional[int]
            Primary key of the affected object.
        details : Optional[dict]
            Additional structured data, stored as JSON.
        """
        conn = get_connection(self.database_path)
        try:
            conn.execute(
                """
                INSERT INTO audit_logs (user_id, action, object_type, object_id, details)
                VALUES (?, ?, ?, ?, ?)
                """,
                (user_id, action, object_type, object_id, json.dumps(details) if details else None),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError("Failed to write audit log", detail=str(e)) from e
        finally:
            conn.close()

    async def record(
        self,
        current_user: Optional[dict],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Like :meth:`log`, but a failure is logged instead of raised."""
        user_id = current_user.get("user_id") if current_user else None
        try:
            await self.log(user_id, action, object_type, object_id, details)
        except PersistenceError as e:
            logger.warning("Audit %s %s %s not recorded: %s", action, object_type, object_id, e.detail)

    async def list_logs(
        self,
        user_id: Optional[int] = None,
        object_type: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Retrieve audit records, newest first, with optional filters."""
        where_clauses: List[str] = []
        params: List[Any] = []
        if user_id is not None:
            where_clauses.append("user_id = ?")
            params.append(user_id)
        if object_type:
            where_clauses.append("object_type = ?")
            params.append(object_type)
        if action:
            where_clauses.append("action = ?")
            params.append(action)
        query = "SELECT id, user_id, action, object_type, object_id, timestamp, details FROM audit_logs"
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        conn = get_connection(self.database_path)
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError("Failed to read audit logs", detail=str(e)) from e
        finally:
            conn.close()

        logs = []
        for row in rows:
            details_data = None
            if row["details"]:
                try:
                    details_data = json.loads(row["details"])
                except json.JSONDecodeError:
                    details_data = row["details"]
            logs.append(
                {
                    "id": row["id"],
                    "user_id": row["user_id"],
                    "action": row["action"],
                    "object_type": row["object_type"],
                    "object_id": row["object_id"],
                    "timestamp": row["timestamp"],
                    "details": details_data,
                }
            )
        return logs
