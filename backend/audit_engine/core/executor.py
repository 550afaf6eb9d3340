"""
Page bridge executor.

The page side (a content script per tab) answers two messages posted to the
bridge endpoint: ``PING`` and ``SCAN_PAGE``. Replies look like
``{"success": true, "result": {...}}`` or ``{"success": false, "error": "..."}``.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from audit_engine.core.errors import AuditExecutionFailed, ContentScriptNotLoaded
from audit_engine.core.summary import summarize
from audit_engine.models.schemas import ScanResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageContext:
    url: str
    tab_id: Optional[int] = None


class HttpAuditExecutor:
    """``execute_one`` implementation that scans through the page bridge."""

    def __init__(self, client: httpx.AsyncClient, path: str = ""):
        self.client = client
        self.path = path

    async def _send(self, message: Dict[str, Any]) -> Dict[str, Any]:
        r = await self.client.post(self.path, json=message)
        r.raise_for_status()
        body = r.json()
        if not isinstance(body, dict):
            raise ValueError("bridge reply is not a JSON object")
        return body

    async def ping(self, context: PageContext) -> bool:
        try:
            body = await self._send({"type": "PING", "tabId": context.tab_id})
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("Ping to tab %s failed: %r", context.tab_id, e)
            return False
        return bool(body.get("success"))

    async def ensure_ready(self, context: PageContext) -> None:
        if not await self.ping(context):
            raise ContentScriptNotLoaded()

    async def __call__(self, audit_type: str, context: PageContext) -> ScanResult:
        message = {"type": "SCAN_PAGE", "auditType": audit_type, "tabId": context.tab_id}
        try:
            body = await self._send(message)
        except httpx.TimeoutException:
            raise AuditExecutionFailed(audit_type, "Scan timed out")
        except httpx.HTTPStatusError as e:
            raise AuditExecutionFailed(audit_type, f"bridge returned HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            raise AuditExecutionFailed(audit_type, f"network error: {e}")
        except ValueError as e:
            raise AuditExecutionFailed(audit_type, f"invalid bridge reply: {e}")

        if not body.get("success") or body.get("result") is None:
            raise AuditExecutionFailed(audit_type, body.get("error") or "Scan failed")
        try:
            result = ScanResult.model_validate(body["result"])
        except ValidationError as e:
            raise AuditExecutionFailed(audit_type, f"malformed scan result ({e.error_count()} errors)")

        counted = summarize(result.findings)
        if result.summary != counted:
            logger.warning(
                "%s summary says %d findings but %d were sent; recounting",
                audit_type, result.summary.total, counted.total,
            )
            result = result.model_copy(update={"summary": counted})
        return result
