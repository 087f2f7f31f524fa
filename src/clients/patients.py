"""HTTP client for the patient registry."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from src.clients.base import ServiceClient
from src.config import settings


@dataclass(frozen=True)
class PatientRef:
    id: str
    name: str


class PatientsClient(ServiceClient):
    """Resolves patient ids for invoice creation."""

    service = "patients"

    def __init__(self, base_url: str | None = None, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(base_url or settings.patients_url, transport)

    async def resolve_patient(self, patient_id: str) -> PatientRef:
        data = await self._get_resource(f"/patients/{patient_id}", "Patient", patient_id)
        name = f"{data.get('first_name', '')} {data.get('last_name', '')}".strip()
        return PatientRef(id=data.get("id", patient_id), name=name)
