from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from app.core.config import get_settings

logger = structlog.get_logger(__name__)

SERVICE_NAME = "vod-wallet-ledger"
SLACK_FIELD_LIMIT = 500
SEVERITY_COLOR = {
    "critical": "#B42318",
    "error": "#F04438",
    "warning": "#F79009",
    "info": "#1570EF",
}


@dataclass(frozen=True)
class AlertRoute:
    channels: tuple[str, ...]
    severity: str


@dataclass(frozen=True)
class AlertTarget:
    channel: str
    url: str


DEFAULT_ALERT_ROUTE = AlertRoute(channels=("generic",), severity="warning")
EVENT_ALERT_ROUTES = {
    "wallet_reconciliation_drift_detected": AlertRoute(
        channels=("slack", "generic"),
        severity="critical",
    ),
    "payments_recovery_review_required": AlertRoute(
        channels=("slack", "generic"),
        severity="error",
    ),
}


def _setting_str(settings: object, attr: str) -> str:
    value = getattr(settings, attr, "")
    return value.strip() if isinstance(value, str) else ""


def _resolve_targets(*, route: AlertRoute, settings: object) -> list[AlertTarget]:
    channel_to_url = {
        "generic": _setting_str(settings, "ops_alert_webhook_url"),
        "slack": _setting_str(settings, "ops_alert_slack_webhook_url"),
    }
    return [
        AlertTarget(channel=channel, url=channel_to_url[channel])
        for channel in route.channels
        if channel_to_url.get(channel)
    ]


def _field_value(value: object) -> str:
    if isinstance(value, (dict, list, tuple)):
        text = json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
    else:
        text = str(value)
    return text if len(text) <= SLACK_FIELD_LIMIT else f"{text[: SLACK_FIELD_LIMIT - 3]}..."


def _generic_body(
    *,
    event: str,
    payload: dict[str, object],
    sent_at: datetime,
    route: AlertRoute,
    app_env: str,
) -> dict[str, Any]:
    return {
        "service": SERVICE_NAME,
        "event": event,
        "severity": route.severity,
        "environment": app_env,
        "sent_at": sent_at.isoformat(),
        "payload": payload,
    }


def _slack_body(
    *,
    event: str,
    payload: dict[str, object],
    sent_at: datetime,
    route: AlertRoute,
    app_env: str,
) -> dict[str, Any]:
    # Scalars fit side by side, nested values (user id lists) get a full row.
    fields = [
        {"title": "Environment", "value": app_env, "short": True},
        {"title": "Sent At", "value": sent_at.isoformat(), "short": True},
    ]
    fields.extend(
        {
            "title": key,
            "value": _field_value(value),
            "short": not isinstance(value, (dict, list, tuple)),
        }
        for key, value in sorted(payload.items())
    )
    return {
        "text": f"[{route.severity.upper()}] {SERVICE_NAME}: {event}",
        "attachments": [
            {
                "color": SEVERITY_COLOR.get(route.severity, SEVERITY_COLOR["warning"]),
                "fields": fields,
            }
        ],
    }


CHANNEL_BODY_BUILDERS = {
    "generic": _generic_body,
    "slack": _slack_body,
}


async def _post_json(
    *,
    client: httpx.AsyncClient,
    url: str,
    body: dict[str, Any],
    event: str,
    channel: str,
) -> bool:
    try:
        response = await client.post(url, json=body)
        response.raise_for_status()
        return True
    except Exception:
        logger.exception("ops_alert_delivery_failed", alert_event=event, provider=channel)
        return False


async def send_ops_alert(*, event: str, payload: dict[str, object]) -> bool:
    settings = get_settings()
    route = EVENT_ALERT_ROUTES.get(event, DEFAULT_ALERT_ROUTE)
    targets = _resolve_targets(route=route, settings=settings)
    if not targets:
        return False

    sent_at = datetime.now(timezone.utc)
    app_env = _setting_str(settings, "app_env") or "dev"

    delivered_to: list[str] = []
    failed_to: list[str] = []
    async with httpx.AsyncClient(timeout=5.0) as client:
        for target in targets:
            body = CHANNEL_BODY_BUILDERS[target.channel](
                event=event,
                payload=payload,
                sent_at=sent_at,
                route=route,
                app_env=app_env,
            )
            delivered = await _post_json(
                client=client,
                url=target.url,
                body=body,
                event=event,
                channel=target.channel,
            )
            (delivered_to if delivered else failed_to).append(target.channel)

    if not delivered_to:
        logger.error("ops_alert_delivery_exhausted", alert_event=event, failed_to=failed_to)
        return False

    logger.info(
        "ops_alert_delivered",
        alert_event=event,
        severity=route.severity,
        delivered_to=delivered_to,
        failed_to=failed_to,
    )
    return True
