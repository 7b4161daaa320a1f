import json
from datetime import datetime

from sqlalchemy import select

from app.retailflow.db.models import IdempotencyRecord


class IdempotencyRepository:
    def __init__(self, db):
        self.db = db

    def get_by_key(self, *, endpoint: str, method: str, idempotency_key: str) -> IdempotencyRecord | None:
        stmt = select(IdempotencyRecord).where(
            IdempotencyRecord.endpoint == endpoint,
            IdempotencyRecord.method == method,
            IdempotencyRecord.idempotency_key == idempotency_key,
        )
        return self.db.execute(stmt).scalars().first()

    def create(self, record: IdempotencyRecord) -> IdempotencyRecord:
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def finish(self, record: IdempotencyRecord, *, state: str, status_code: int, response_body: dict) -> None:
        """Store the outcome that later requests with the same key will replay."""
        record.state = state
        record.status_code = status_code
        record.response_body = json.dumps(response_body, default=str)
        record.updated_at = datetime.utcnow()
        self.db.add(record)
        self.db.commit()

    @staticmethod
    def stored_response(record: IdempotencyRecord) -> dict | None:
        if record.response_body is None:
            return None
        return json.loads(record.response_body)
