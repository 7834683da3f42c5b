"""
Shared audit helper — one way for services to record ledger events.

Usage::

    from devstrap.core.services.audit_helpers import make_auditor

    _audit = make_auditor("credentials")
    _audit("add_key", "ai-tools", "Key OPENAI_API_KEY stored", detail={"key": "OPENAI_API_KEY"})

Fail-safe: the ledger location comes from the registered settings and
any problem resolving or writing it is logged at DEBUG.  Never raises.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


def audit_event(component: str, operation: str, target: str, summary: str, **kwargs: Any) -> None:
    """Append one event to the audit ledger of the current settings."""
    try:
        from devstrap.core.context import get_settings
        from devstrap.core.persistence.audit import AuditEntry, AuditWriter

        writer = AuditWriter(get_settings().audit_file)
        writer.write(AuditEntry(
            component=component,
            operation=operation,
            target=target,
            summary=summary,
            **kwargs,
        ))
    except Exception as exc:
        logger.debug("Failed to record audit event: %s", exc)


def make_auditor(component: str) -> Callable[..., None]:
    """Return an ``_audit(operation, target, summary, **kw)`` bound to *component*."""

    def _audit(operation: str, target: str, summary: str, **kwargs: Any) -> None:
        audit_event(component, operation, target, summary, **kwargs)

    return _audit
