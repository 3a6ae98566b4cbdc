"""Persistence for login sessions, stored alongside the domain tables."""

import json
from typing import Any

from sqlalchemy import delete
from sqlmodel import Session, col

from .models import SessionModel


class DatabaseSessionStore:
    """Session records in the ``sessions`` table.

    Every call commits on its own: session bookkeeping is independent of
    domain transactions.
    """

    def __init__(self, session: Session):
        self.session = session

    def load(self, token: str, now: float) -> tuple[dict[str, Any], float] | None:
        """Return the data and expiry of a live session, or None."""
        record = self.session.get(SessionModel, token)
        if record is None or record.expiry < now:
            return None
        return json.loads(record.data.decode("utf-8")), record.expiry

    def save(self, token: str, data: dict[str, Any], expiry: float) -> None:
        record = self.session.get(SessionModel, token)
        encoded = json.dumps(data).encode("utf-8")
        if record is None:
            record = SessionModel(token=token, data=encoded, expiry=expiry)
        else:
            record.data = encoded
            record.expiry = expiry
        self.session.add(record)
        self.session.commit()

    def delete(self, token: str) -> None:
        statement = delete(SessionModel).where(col(SessionModel.token) == token)
        self.session.exec(statement)  # type: ignore[call-overload]
        self.session.commit()

    def delete_expired(self, now: float) -> int:
        result = self.session.exec(  # type: ignore[call-overload]
            delete(SessionModel).where(col(SessionModel.expiry) < now)
        )
        self.session.commit()
        return int(result.rowcount)
