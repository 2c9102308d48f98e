"""
Automation webhook forwarding.

Discovery and outreach events are forwarded to one external workflow-automation
endpoint (n8n/Make-style). Forwarding is "fire-and-log, never fire-and-fail":
- no URL configured: a logged no-op;
- unreachable, timed out (10s default) or non-2xx: logged and reported as
  `triggered=False`, never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import httpx

from domain.activity import BATCH_ENTITY_ID, Action, ActivityEntry, EntityType
from services.activity_logger import ActivityLogger

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class ForwardResult:
    triggered: bool
    skipped: bool = False
    status_code: Optional[int] = None
    error: Optional[str] = None


class AutomationWebhook:
    """Posts JSON payloads to the configured automation target."""

    def __init__(
        self,
        url: Optional[str],
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url or None
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return self.url is not None

    def forward(self, event: str, payload: Mapping[str, Any]) -> ForwardResult:
        """
        Post the raw payload to the automation target.

        The event name travels in the `X-Pipeline-Event` header so the payload
        itself is forwarded unchanged.
        """

        if not self.url:
            logger.info("Automation webhook URL not configured, skipping %s", event)
            return ForwardResult(triggered=False, skipped=True)

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(
                    self.url,
                    json=dict(payload),
                    headers={"Content-Type": "application/json", "X-Pipeline-Event": event},
                )
        except httpx.TimeoutException:
            logger.warning("Automation webhook timed out after %.1fs for %s", self.timeout, event)
            return ForwardResult(triggered=False, error=f"timed out after {self.timeout:g}s")
        except httpx.HTTPError as e:
            logger.warning("Error posting %s to automation webhook: %s", event, e)
            return ForwardResult(triggered=False, error=str(e))

        if 200 <= response.status_code < 300:
            logger.info("Forwarded %s to automation webhook: %s...", event, self.url[:50])
            return ForwardResult(triggered=True, status_code=response.status_code)

        logger.warning(
            "Automation webhook returned %d for %s: %s",
            response.status_code,
            event,
            response.text[:200],
        )
        return ForwardResult(
            triggered=False,
            status_code=response.status_code,
            error=f"webhook returned {response.status_code}",
        )


def forward_with_audit(
    webhook: AutomationWebhook,
    activity: ActivityLogger,
    event: str,
    payload: Mapping[str, Any],
) -> ForwardResult:
    """Forward and, on a real failure, add a `webhook_forward_failed` audit record."""

    result = webhook.forward(event, payload)
    if not result.triggered and not result.skipped:
        activity.record(
            ActivityEntry(
                entity_type=EntityType.PROSPECT,
                entity_id=BATCH_ENTITY_ID,
                action=Action.WEBHOOK_FORWARD_FAILED.value,
                description=f"Forwarding {event} to automation webhook failed",
                metadata={
                    "event": event,
                    "status_code": result.status_code,
                    "error": result.error,
                },
            )
        )
    return result


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "ForwardResult",
    "AutomationWebhook",
    "forward_with_audit",
]
