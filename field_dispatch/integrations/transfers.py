from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol

import httpx

from field_dispatch.core.config import settings


class TransferGatewayError(Exception):
    """Transfer could not be created; ``message`` is safe to store on payments."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class TransferResult:
    id: str
    status: str


class TransferGateway(Protocol):
    async def create_transfer(
        self,
        amount: Decimal,
        destination_account_id: str,
        description: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> TransferResult: ...


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1")))


class StripeTransferGateway:
    """
    Stripe Connect transfers over the REST API.

    Every call carries an ``Idempotency-Key`` so a repeated batch for the same
    payments cannot move money twice.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        currency: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.stripe_api_key
        self.base_url = (base_url or settings.stripe_api_base).rstrip("/")
        self.currency = currency or settings.payout.currency
        self.timeout_s = timeout_s or settings.payout.transfer_timeout_seconds
        self.transport = transport

    async def create_transfer(
        self,
        amount: Decimal,
        destination_account_id: str,
        description: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> TransferResult:
        if not self.api_key:
            raise TransferGatewayError("Transfer gateway is not configured")

        form: dict[str, Any] = {
            "amount": str(to_minor_units(amount)),
            "currency": self.currency,
            "destination": destination_account_id,
            "description": description,
        }
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = str(value)

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Idempotency-Key": idempotency_key,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                r = await client.post(f"{self.base_url}/v1/transfers", data=form, headers=headers)
        except httpx.TimeoutException as exc:
            raise TransferGatewayError(f"Transfer request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransferGatewayError(f"Transfer request failed: {exc}") from exc

        if r.status_code >= 400:
            try:
                message = r.json().get("error", {}).get("message")
            except ValueError:
                message = None
            raise TransferGatewayError(message or f"Transfer rejected with HTTP {r.status_code}")

        data = r.json()
        return TransferResult(id=data["id"], status="reversed" if data.get("reversed") else "created")
