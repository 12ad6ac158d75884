"""Property catalog HTTP client for display-only property summaries"""

import httpx
from mortgage_engine.domain.exceptions import NotFoundError, PropertyCatalogError
from mortgage_engine.config import settings


def summarize_property(data: dict) -> str:
    """One-line human-readable summary, e.g. 'Harbour View Tower 12A, Central (650 sq ft)'"""
    title = data.get("title") or data.get("name") or f"Property {data['id']}"
    parts = [title]
    if data.get("district"):
        parts.append(str(data["district"]))
    summary = ", ".join(parts)
    if data.get("area"):
        summary += f" ({data['area']} sq ft)"
    return summary


class PropertyClient:
    """Client for the external property catalog API"""

    def __init__(self, base_url: str | None = None, timeout: float | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url or settings.property_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def get_property_summary(self, property_id: int) -> str:
        """
        Fetch a property and reduce it to a display summary.

        Raises:
            NotFoundError: Property catalog has no such property
            PropertyCatalogError: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(f"{self.base_url}/properties/{property_id}")
                if response.status_code == 404:
                    raise NotFoundError(f"Property {property_id} not found")
                response.raise_for_status()
                return summarize_property(response.json())

            except httpx.TimeoutException as e:
                raise PropertyCatalogError(f"Property API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise PropertyCatalogError(f"Property API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise PropertyCatalogError(f"Property API unreachable: {e}") from e
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                raise PropertyCatalogError(f"Invalid property data: {e}") from e
