"""Timer trigger blueprint — scheduled entry point for incremental cache sync."""

import logging

import azure.functions as func

from cloud_mirror.config import load_config
from cloud_mirror.orchestration.engine import cache_engine_from_config

logger = logging.getLogger(__name__)

bp = func.Blueprint()


@bp.timer_trigger(
    schedule="0 */15 * * * *",
    arg_name="timer",
    run_on_startup=False,
)
def timer_trigger(timer: func.TimerRequest) -> None:
    """Scheduled trigger that pulls remote changes into the node cache.

    Runs every 15 minutes. A failed run leaves the cache at the last
    persisted checkpoint; the next run resumes from there.
    """
    logger.info("Timer trigger fired")

    try:
        if timer.past_due:
            logger.warning("Timer trigger is past due")

        config = load_config()
        engine = cache_engine_from_config(config)
        report = engine.sync()
        logger.info(
            "Sync complete — %d request(s), %d upserted, %d purged",
            report.requests,
            report.upserted,
            report.purged,
        )

    except Exception:
        logger.exception("Timer trigger failed")
        raise
