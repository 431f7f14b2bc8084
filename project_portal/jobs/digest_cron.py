"""
Digest Cron Job: periodic project digests for every active project.

Each project is digested in its own transaction, so one failing project
neither blocks nor rolls back the others. The per-project high-water mark
makes re-runs safe: a project with nothing new since its last digest is
skipped without sending anything.

Typical cron schedule: 0 17 * * 1-5 (weekdays at 5 PM)
"""

import asyncio
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.config import get_settings
from ..core.database import build_engine
from ..models import Project, ProjectStatus
from ..services.digest import DigestService
from ..services.email import EmailSender

logger = logging.getLogger(__name__)


# =============================================================================
# ALERTING
# =============================================================================


async def send_alert(
    title: str,
    message: str,
    severity: str = "error",
    details: dict | None = None,
) -> None:
    """
    Report a job failure.

    Always logs; additionally posts to ALERT_WEBHOOK_URL when configured
    (PagerDuty, Opsgenie, a chat webhook, ...).
    """
    log_message = f"[CRON ALERT] {title}: {message}"
    if details:
        log_message += f" | Details: {details}"

    if severity == "critical":
        logger.critical(log_message)
    else:
        logger.error(log_message)

    webhook_url = get_settings().alert_webhook_url
    if webhook_url:
        try:
            await _send_webhook_alert(webhook_url, title, message, severity, details)
        except Exception as e:
            logger.error(f"Failed to send webhook alert: {e}")


async def _send_webhook_alert(
    webhook_url: str,
    title: str,
    message: str,
    severity: str,
    details: dict | None,
) -> None:
    payload = {
        "title": title,
        "message": message,
        "severity": severity,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "source": "project-portal-digest",
        "details": details or {},
    }

    async with httpx.AsyncClient() as client:
        await client.post(webhook_url, json=payload, timeout=10)


# =============================================================================
# JOB
# =============================================================================


async def run_digest_job(
    database_url: str | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    email_sender: EmailSender | None = None,
    project_ids: list[UUID] | None = None,
) -> dict[str, Any]:
    """
    Main entry point for the digest cron job.

    Args:
        database_url: Async database URL; ignored when session_factory is given
        session_factory: Existing session factory (tests, embedding)
        email_sender: Transport override; defaults to the configured one
        project_ids: Restrict the run to these projects

    Returns:
        Job result summary
    """
    start_time = datetime.now(timezone.utc)
    logger.info(f"Starting digest job at {start_time.isoformat()}")

    engine = None
    if session_factory is None:
        engine = build_engine(database_url or get_settings().database_url_async)
        session_factory = async_sessionmaker(engine, expire_on_commit=False)

    results: dict[str, Any] = {
        "started_at": start_time.isoformat(),
        "completed_at": None,
        "projects_checked": 0,
        "digests_sent": 0,
        "digests_skipped": 0,
        "digests_failed": 0,
        "summaries": {},
        "errors": [],
    }

    try:
        # Step 1: projects still in flight
        async with session_factory() as session:
            query = select(Project.id).where(Project.status != ProjectStatus.COMPLETED)
            if project_ids:
                query = query.where(Project.id.in_(project_ids))
            ids = list((await session.execute(query.order_by(Project.created_at))).scalars().all())

        # Step 2: one session per project; a sent digest commits its own mark
        for project_id in ids:
            results["projects_checked"] += 1
            try:
                async with session_factory() as session:
                    digest = DigestService(session, email_sender=email_sender)
                    result = await digest.compute_and_send_digest(project_id)
            except Exception as e:
                results["digests_failed"] += 1
                results["errors"].append(f"Project {project_id}: {e}")
                logger.error(f"Digest failed for project {project_id}: {e}")
                continue

            if result.sent:
                results["digests_sent"] += 1
                results["summaries"][str(project_id)] = result.summary
            elif result.error:
                results["digests_failed"] += 1
                results["errors"].append(f"Project {project_id}: {result.error}")
            else:
                results["digests_skipped"] += 1

    except Exception as e:
        error_msg = f"Digest job failed: {str(e)}"
        logger.error(error_msg)
        results["errors"].append(error_msg)

        await send_alert(
            title="Digest Cron Job Failed",
            message="The project digest job crashed unexpectedly.",
            severity="critical",
            details={
                "error": str(e),
                "traceback": traceback.format_exc()[-500:],
                "started_at": results["started_at"],
                "digests_sent_before_crash": results["digests_sent"],
            },
        )
        raise

    finally:
        if engine is not None:
            await engine.dispose()

    end_time = datetime.now(timezone.utc)
    results["completed_at"] = end_time.isoformat()
    results["duration_seconds"] = (end_time - start_time).total_seconds()

    logger.info(
        f"Digest job completed in {results['duration_seconds']:.2f}s: "
        f"{results['projects_checked']} checked, {results['digests_sent']} sent, "
        f"{results['digests_skipped']} with nothing new"
    )

    if results["digests_failed"] > 0:
        await send_alert(
            title="Digest Job Completed with Errors",
            message=f"{results['digests_failed']} project digest(s) failed during the run.",
            severity="warning",
            details={"errors": results["errors"][:5]},
        )

    return results


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for the digest job."""
    import argparse

    parser = argparse.ArgumentParser(description="Send project digest emails")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database connection string (defaults to DATABASE_URL)",
    )
    parser.add_argument(
        "--project",
        action="append",
        type=UUID,
        dest="project_ids",
        help="Only digest this project (repeatable)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    database_url = args.database_url
    if database_url and database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    try:
        results = asyncio.run(run_digest_job(
            database_url=database_url,
            project_ids=args.project_ids,
        ))
        print(f"Job completed: {results}")
    except Exception as e:
        print(f"Job failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
