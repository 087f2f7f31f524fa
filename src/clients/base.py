"""Shared HTTP plumbing for the ledger's collaborator services."""

from __future__ import annotations

import httpx

from src.config import settings
from src.core.exceptions import ExternalServiceError, NotFoundError

CALLER_HEADERS = {"X-Caller-Service": settings.service_name}


class ServiceClient:
    """Read-only JSON client for a sibling service."""

    service: str = "service"

    def __init__(
        self,
        base_url: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.prefix = "/api/v1"
        self.transport = transport

    async def _get_resource(self, path: str, resource: str, identifier: str) -> dict:
        """GET a single resource, mapping 404 to ``NotFoundError``."""
        try:
            async with httpx.AsyncClient(
                headers=CALLER_HEADERS,
                timeout=settings.http_timeout,
                transport=self.transport,
            ) as client:
                resp = await client.get(f"{self.base_url}{self.prefix}{path}")
                if resp.status_code == 404:
                    raise NotFoundError(resource, identifier)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPError as e:
            raise ExternalServiceError(self.service, str(e)) from e
