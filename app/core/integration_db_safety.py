from __future__ import annotations

import re
from dataclasses import dataclass

from sqlalchemy.engine import URL, make_url

TEST_DB_NAME_RE = re.compile(r"(^|_)test($|_)", re.IGNORECASE)
ALLOWED_LOCAL_HOSTS = frozenset(
    {
        "localhost",
        "127.0.0.1",
        "::1",
        "postgres",
        "vod_ledger_postgres",
        "vod_ledger_postgres_test",
    }
)


@dataclass(frozen=True, slots=True)
class IntegrationDbSafetyResult:
    is_safe: bool
    reason: str
    database_name: str
    host: str


def _unsafe_reason(parsed: URL, *, db_name: str, host: str) -> str | None:
    if parsed.get_backend_name() != "postgresql":
        return "Integration tests need PostgreSQL (row locks, partial indexes, triggers)."
    if not db_name:
        return "Database name is empty."
    if TEST_DB_NAME_RE.search(db_name) is None:
        return "Database name must carry a 'test' token, e.g. 'vod_ledger_test'."
    if host not in ALLOWED_LOCAL_HOSTS:
        return "Host is not one of the local integration-test hosts."
    return None


def assess_integration_db_safety(database_url: str) -> IntegrationDbSafetyResult:
    parsed = make_url(database_url)
    db_name = (parsed.database or "").strip()
    host = (parsed.host or "").strip().lower()

    reason = _unsafe_reason(parsed, db_name=db_name, host=host)
    return IntegrationDbSafetyResult(
        is_safe=reason is None,
        reason=reason or "ok",
        database_name=db_name,
        host=host,
    )


def assert_safe_integration_db(database_url: str) -> None:
    result = assess_integration_db_safety(database_url)
    if result.is_safe:
        return

    raise RuntimeError(
        "Refusing to run integration tests with destructive TRUNCATE.\n"
        f"Reason: {result.reason}\n"
        f"Resolved DB: name='{result.database_name}' host='{result.host}'\n"
        "Wallet and purchase tables are wiped between tests; point DATABASE_URL at a "
        "dedicated local PostgreSQL database such as 'vod_ledger_test'."
    )
