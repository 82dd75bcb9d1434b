from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
import structlog

from app.core.config import Settings, get_settings
from app.economy.payments.errors import GatewayRejectedError, GatewayUnavailableError
from app.economy.payments.types import GatewayConfirmation

logger = structlog.get_logger(__name__)

RETRY_JITTER_RATIO = 0.2
SUCCESSFUL_TRANSACTION_STATUS = "successful"
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def retry_backoff_seconds(*, next_retry_attempt: int, backoff_max_seconds: int) -> float:
    safe_retry_attempt = max(1, int(next_retry_attempt))
    safe_backoff_max_seconds = max(1, int(backoff_max_seconds))

    base_delay = min(safe_backoff_max_seconds, 2 ** (safe_retry_attempt - 1))
    jitter = random.uniform(0, base_delay * RETRY_JITTER_RATIO)
    return min(float(safe_backoff_max_seconds), base_delay + jitter)


@dataclass(slots=True, frozen=True)
class GatewayInitiation:
    external_ref: str
    redirect_link: str


@dataclass(slots=True, frozen=True)
class GatewayCustomer:
    phone_number: str
    name: str
    email: str | None = None


def coerce_amount(value: object) -> Decimal | None:
    """Read a provider amount exactly; ``None`` when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str, Decimal)):
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def parse_verification_payload(body: dict[str, Any]) -> GatewayConfirmation:
    data = body.get("data")
    if body.get("status") != "success" or not isinstance(data, dict):
        raise GatewayRejectedError(str(body.get("message") or "verification rejected"))

    external_ref = data.get("tx_ref")
    if not isinstance(external_ref, str) or not external_ref:
        raise GatewayRejectedError("verification payload has no tx_ref")

    provider_transaction_id = data.get("id")
    currency = data.get("currency")
    amount = coerce_amount(data.get("amount"))
    return GatewayConfirmation(
        external_ref=external_ref,
        success=data.get("status") == SUCCESSFUL_TRANSACTION_STATUS,
        provider_transaction_id=str(provider_transaction_id) if provider_transaction_id is not None else None,
        amount=amount,
        amount_unreadable="amount" in data and amount is None,
        currency=currency if isinstance(currency, str) else None,
        raw=data,
    )


class PaymentGatewayClient:
    def __init__(
        self,
        *,
        base_url: str,
        secret_key: str,
        timeout_seconds: float,
        max_attempts: int,
        backoff_max_seconds: int,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._secret_key = secret_key
        self._timeout_seconds = timeout_seconds
        self._max_attempts = max(1, int(max_attempts))
        self._backoff_max_seconds = backoff_max_seconds
        self._transport = transport
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> PaymentGatewayClient:
        resolved = settings or get_settings()
        return cls(
            base_url=resolved.gateway_base_url,
            secret_key=resolved.gateway_secret_key,
            timeout_seconds=resolved.gateway_timeout_seconds,
            max_attempts=resolved.gateway_max_attempts,
            backoff_max_seconds=resolved.gateway_backoff_max_seconds,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout_seconds,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self._secret_key}",
                "Content-Type": "application/json",
            },
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        last_error: str = "unknown"
        async with self._client() as client:
            for attempt in range(1, self._max_attempts + 1):
                try:
                    response = await client.request(method, path, json=json_body)
                except httpx.TransportError as exc:
                    last_error = type(exc).__name__
                else:
                    if response.status_code not in RETRYABLE_STATUS_CODES:
                        if response.status_code >= 400:
                            logger.warning(
                                "payment_gateway_request_rejected",
                                method=method,
                                path=path,
                                status_code=response.status_code,
                            )
                            raise GatewayRejectedError(f"gateway returned {response.status_code}")
                        try:
                            body = response.json()
                        except ValueError as exc:
                            raise GatewayRejectedError("gateway returned a non-JSON body") from exc
                        if not isinstance(body, dict):
                            raise GatewayRejectedError("gateway returned an unexpected body")
                        return body
                    last_error = f"http_{response.status_code}"

                if attempt < self._max_attempts:
                    delay = retry_backoff_seconds(
                        next_retry_attempt=attempt,
                        backoff_max_seconds=self._backoff_max_seconds,
                    )
                    logger.info(
                        "payment_gateway_retry_scheduled",
                        method=method,
                        path=path,
                        attempt=attempt,
                        delay_seconds=round(delay, 3),
                        error=last_error,
                    )
                    await self._sleep(delay)

        logger.warning(
            "payment_gateway_unavailable",
            method=method,
            path=path,
            attempts=self._max_attempts,
            error=last_error,
        )
        raise GatewayUnavailableError(f"{method} {path} failed after {self._max_attempts} attempts: {last_error}")

    async def initiate(
        self,
        *,
        external_ref: str,
        amount: int,
        currency: str,
        redirect_url: str,
        customer: GatewayCustomer,
        title: str,
        description: str,
        metadata: dict[str, object],
    ) -> GatewayInitiation:
        body = await self._request(
            "POST",
            "/payments",
            json_body={
                "tx_ref": external_ref,
                "amount": amount,
                "currency": currency,
                "redirect_url": redirect_url,
                "customer": {
                    "email": customer.email or f"{customer.phone_number}@customers.invalid",
                    "phonenumber": customer.phone_number,
                    "name": customer.name,
                },
                "customizations": {"title": title, "description": description},
                "meta": metadata,
            },
        )
        data = body.get("data")
        link = data.get("link") if isinstance(data, dict) else None
        if body.get("status") != "success" or not isinstance(link, str) or not link:
            raise GatewayRejectedError(str(body.get("message") or "payment initiation rejected"))
        return GatewayInitiation(external_ref=external_ref, redirect_link=link)

    async def verify(self, *, provider_transaction_id: str) -> GatewayConfirmation:
        body = await self._request("GET", f"/transactions/{provider_transaction_id}/verify")
        return parse_verification_payload(body)
