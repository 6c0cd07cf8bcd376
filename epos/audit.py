import logging

from .models import AuditLog

logger = logging.getLogger(__name__)


def record_audit(action, entity, record_id, details=None, actor=None):
    """Append an audit entry and mirror it to the log."""
    entry = AuditLog.objects.create(
        action=action,
        entity=entity,
        record_id=str(record_id),
        details=details or {},
        actor=actor,
    )
    logger.info("audit %s %s:%s %s", action, entity, record_id, entry.details)
    return entry
