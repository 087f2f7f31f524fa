"""HTTP client for the hospital service catalog."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

import httpx

from src.clients.base import ServiceClient
from src.config import settings
from src.core.exceptions import ExternalServiceError
from src.core.money import to_money


@dataclass(frozen=True)
class ServiceRef:
    id: str
    name: str
    current_price: Decimal


class CatalogClient(ServiceClient):
    """Looks up billable services and their current prices."""

    service = "catalog"

    def __init__(self, base_url: str | None = None, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(base_url or settings.catalog_url, transport)

    async def resolve_service(self, service_id: str) -> ServiceRef:
        data = await self._get_resource(f"/services/{service_id}", "Service", service_id)
        try:
            price = to_money(data["current_price"])
        except (KeyError, ValueError) as e:
            raise ExternalServiceError(self.service, f"invalid price for service {service_id}: {e}") from e
        return ServiceRef(
            id=data.get("id", service_id),
            name=data.get("name", service_id),
            current_price=price,
        )
