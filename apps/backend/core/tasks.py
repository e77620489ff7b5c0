import logging

from celery import shared_task
from django.conf import settings
from django.core.management import call_command

logger = logging.getLogger(__name__)


@shared_task(name="core.tasks.purge_old_audit_events")
def purge_old_audit_events(days: int | None = None) -> None:
    retention_days = days or settings.AUDIT_RETENTION_DAYS
    logger.info("Purging audit events older than %s days", retention_days)
    call_command("purge_audit_events", days=retention_days)
