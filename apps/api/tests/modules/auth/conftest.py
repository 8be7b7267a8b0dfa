"""
Fixtures for device lockout tests.
"""

from types import SimpleNamespace

import pytest


class FakeLockoutRepository:
    """Dict-backed stand-in for ``app.modules.auth.repository``."""

    def __init__(self):
        self.records: dict[str, SimpleNamespace] = {}

    async def get(self, db, device_id):
        return self.records.get(device_id)

    async def increment_attempts(self, db, device_id):
        record = self.records.get(device_id)
        if record is None:
            record = SimpleNamespace(device_id=device_id, attempts=0, suspended_until=None)
            self.records[device_id] = record
        record.attempts += 1
        return record

    async def set_suspension(self, db, record, suspended_until, attempts):
        record.suspended_until = suspended_until
        record.attempts = attempts
        return record

    async def clear(self, db, device_id):
        self.records.pop(device_id, None)


@pytest.fixture
def lockout_repo():
    return FakeLockoutRepository()
