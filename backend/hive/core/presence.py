"""Swarm Presence: pure staleness rules for per-swarm viewer tracking.

Invariants:
    - A viewer is stale when last_seen_at is older than STALE_THRESHOLD
    - Clients heartbeat every HEARTBEAT_INTERVAL, so a live viewer misses at most three
      heartbeats before going stale
    - partition_viewers excludes the caller from every bucket except total
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from hive.core.domain_types import ensure_utc

HEARTBEAT_INTERVAL = timedelta(seconds=30)
STALE_THRESHOLD = timedelta(seconds=120)


def stale_cutoff(now: datetime) -> datetime:
    return ensure_utc(now) - STALE_THRESHOLD


def is_stale(last_seen_at: datetime, now: datetime) -> bool:
    return ensure_utc(last_seen_at) < stale_cutoff(now)


@dataclass
class ViewerPartition:
    other: list = field(default_factory=list)
    active: list = field(default_factory=list)
    inactive: list = field(default_factory=list)
    total: int = 0


def partition_viewers(viewers: list, current_user_id) -> ViewerPartition:
    """Split viewers (objects with user_id/is_active) relative to the caller."""
    other = [v for v in viewers if v.user_id != current_user_id]
    return ViewerPartition(
        other=other,
        active=[v for v in other if v.is_active],
        inactive=[v for v in other if not v.is_active],
        total=len(viewers),
    )
