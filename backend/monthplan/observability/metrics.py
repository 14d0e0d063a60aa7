"""Lightweight metrics helpers."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from monthplan.observability import tracing

logger = logging.getLogger(__name__)


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Log a metric to Opik if it is enabled."""
    client = tracing.get_opik_client()
    if not client:
        return

    payload: Dict[str, Any] = {"value": value}
    if metadata:
        payload.update({k: v for k, v in metadata.items() if v is not None})

    try:
        metric_trace = client.trace(name=f"metric:{name}", metadata=payload)
        metric_trace.end()
    except Exception as exc:  # pragma: no cover - SDK specific
        logger.debug("Unable to record metric %s: %s", name, exc)
