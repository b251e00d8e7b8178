"""Scheduled jobs: webhook dispatch and presence pruning, run from cron.

Invariants:
    - Each run opens and disposes its own engine via db/session.session_scope
    - Transient database failures are retried with exponential backoff
    - Exit code 0 on success, 1 on failure (cron alerting keys off it)
"""

import asyncio
import logging
import sys

from sqlalchemy.exc import OperationalError

from hive.config import get_settings
from hive.core.timeouts import with_retry
from hive.db.session import session_scope
from hive.infrastructure.observability import PerformanceTracker, log_performance, setup_logging
from hive.infrastructure.webhook_client import WebhookClient
from hive.services.presence_service import PresenceService
from hive.services.webhook_dispatcher import WebhookDispatcher

logger = logging.getLogger(__name__)


async def dispatch_webhooks_once(session_factory, client: WebhookClient, limit: int) -> dict:
    async with session_factory() as db:
        return await WebhookDispatcher(db, client).process_pending(limit)


async def prune_presence_once(session_factory) -> int:
    async with session_factory() as db:
        return await PresenceService(db).prune_stale()


async def _run_webhook_dispatch() -> dict:
    settings = get_settings()
    client = WebhookClient(
        timeout_seconds=settings.webhook_timeout_seconds,
        max_payload_bytes=settings.webhook_max_payload_bytes,
    )
    tracker = PerformanceTracker()
    try:
        async with session_scope(settings.database_url) as session_factory:
            result = await with_retry(
                lambda: dispatch_webhooks_once(
                    session_factory, client, settings.webhook_dispatch_batch_size,
                ),
                retry_on=(OperationalError,),
            )
    finally:
        await client.aclose()
    tracker.checkpoint("dispatch")
    log_performance(logger, "webhook_dispatch", tracker.metrics(), **result)
    return result


async def _run_prune_presence() -> int:
    settings = get_settings()
    async with session_scope(settings.database_url) as session_factory:
        removed = await with_retry(
            lambda: prune_presence_once(session_factory), retry_on=(OperationalError,),
        )
    logger.info(f"Pruned {removed} stale presence rows")
    return removed


def _main(job) -> None:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    try:
        asyncio.run(job())
    except Exception as e:
        logger.error(f"Job {job.__name__} failed: {e}", exc_info=True)
        sys.exit(1)


def run_webhook_dispatch() -> None:
    _main(_run_webhook_dispatch)


def prune_presence() -> None:
    _main(_run_prune_presence)
