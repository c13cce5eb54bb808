"""Per-user statistics behind badge requirements.

The four sources (bikes, service logs, components and the account record) are
read concurrently. A source that fails contributes its zero value and the
failure is reported on the ``StatsReport``; only running out of time fails the
whole computation.
"""

from __future__ import annotations

import concurrent.futures
import datetime
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional, cast

from firebase_admin import firestore
from flask import current_app

from loglynx.constants import (
    BIKES_COLLECTION,
    COMPONENTS_COLLECTION,
    DEFAULT_BADGE_STATS_TIMEOUT,
    MS_PER_DAY,
    OWNER_UID,
    SERVICE_LOGS_COLLECTION,
    USER_UID,
    USERS_COLLECTION,
)
from loglynx.errors import StatsTimeoutError
from loglynx.utils import to_epoch_ms, utcnow

from .models import UserStats

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

Fetcher = Callable[["Client", str], list[dict[str, Any]]]


@dataclass(frozen=True)
class SourceResult:
    """Outcome of reading one stats source."""

    items: list[dict[str, Any]] = field(default_factory=list)
    ok: bool = True
    error: Optional[str] = None


@dataclass(frozen=True)
class StatsReport:
    """Computed stats plus the sources that had to be zeroed."""

    stats: UserStats
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def degraded(self) -> bool:
        return bool(self.failures)


def fetch_bikes(db: Client, uid: str) -> list[dict[str, Any]]:
    query = db.collection(BIKES_COLLECTION).where(
        filter=firestore.FieldFilter(OWNER_UID, "==", uid)
    )
    return [doc.to_dict() or {} for doc in query.stream()]


def fetch_service_logs(db: Client, uid: str) -> list[dict[str, Any]]:
    query = db.collection_group(SERVICE_LOGS_COLLECTION).where(
        filter=firestore.FieldFilter(USER_UID, "==", uid)
    )
    return [doc.to_dict() or {} for doc in query.stream()]


def fetch_components(db: Client, uid: str) -> list[dict[str, Any]]:
    query = db.collection(COMPONENTS_COLLECTION).where(
        filter=firestore.FieldFilter(OWNER_UID, "==", uid)
    )
    return [doc.to_dict() or {} for doc in query.stream()]


def fetch_account(db: Client, uid: str) -> list[dict[str, Any]]:
    doc = cast(
        "DocumentSnapshot", db.collection(USERS_COLLECTION).document(uid).get()
    )
    return [doc.to_dict() or {}] if doc.exists else []


STATS_SOURCES: dict[str, Fetcher] = {
    "bikes": fetch_bikes,
    "serviceLogs": fetch_service_logs,
    "components": fetch_components,
    "account": fetch_account,
}


def _read_source(fetcher: Fetcher, db: Client, uid: str) -> SourceResult:
    # Runs on a worker thread, so no app-context logging here.
    try:
        return SourceResult(items=fetcher(db, uid))
    except Exception as e:  # any source failure degrades to zero
        return SourceResult(ok=False, error=f"{type(e).__name__}: {e}")


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def days_active(account: dict[str, Any] | None, now: datetime.datetime) -> int:
    """Whole days since the account was created, 0 when unknown."""
    created_ms = to_epoch_ms((account or {}).get("createdAt"))
    if created_ms is None:
        return 0
    elapsed = cast(int, to_epoch_ms(now)) - created_ms
    return max(0, elapsed // MS_PER_DAY)


def build_stats(
    results: dict[str, SourceResult], now: datetime.datetime
) -> UserStats:
    """Reduce per-source results into a ``UserStats``."""
    bikes = results["bikes"].items
    service_logs = results["serviceLogs"].items
    account = results["account"].items
    return {
        "totalMileage": sum(_number(bike.get("totalMileage")) for bike in bikes),
        "bikeCount": len(bikes),
        "serviceCount": len(service_logs),
        "componentCount": len(results["components"].items),
        "totalServiceCost": sum(_number(log.get("cost")) for log in service_logs),
        "daysActive": days_active(account[0] if account else None, now),
    }


def compute_stats_report(
    db: Client,
    uid: str,
    timeout: float | None = None,
    now: datetime.datetime | None = None,
) -> StatsReport:
    """Read every stats source for ``uid`` and aggregate the results.

    Raises ``StatsTimeoutError`` if the reads do not finish within ``timeout``
    seconds (``BADGE_STATS_TIMEOUT`` by default). Nothing partial is returned
    in that case.
    """
    if timeout is None:
        timeout = current_app.config.get(
            "BADGE_STATS_TIMEOUT", DEFAULT_BADGE_STATS_TIMEOUT
        )

    executor = concurrent.futures.ThreadPoolExecutor(max_workers=len(STATS_SOURCES))
    futures = {
        name: executor.submit(_read_source, fetcher, db, uid)
        for name, fetcher in STATS_SOURCES.items()
    }
    try:
        _, pending = concurrent.futures.wait(futures.values(), timeout=timeout)
        if pending:
            for future in pending:
                future.cancel()
            current_app.logger.error(
                f"Stats for user {uid} timed out after {timeout}s "
                f"({len(pending)} sources pending)"
            )
            raise StatsTimeoutError(f"Timed out computing stats for user {uid}")
    finally:
        executor.shutdown(wait=False)

    results = {name: future.result() for name, future in futures.items()}
    failures = {}
    for name, result in results.items():
        if not result.ok:
            current_app.logger.warning(
                f"Stats source '{name}' failed for user {uid}, using zero: "
                f"{result.error}"
            )
            failures[name] = result.error or "unknown error"

    stats = build_stats(results, now or utcnow())
    return StatsReport(stats=stats, failures=failures)


def compute_stats(db: Client, uid: str) -> UserStats:
    """Return the (possibly degraded) stats for ``uid``."""
    return compute_stats_report(db, uid).stats
