import logging
from typing import Iterable

import httpx

logger = logging.getLogger(__name__)


class RegistrationError(Exception):
    """The service directory could not be reached or rejected the registration."""


def _extract_service_id(body: object) -> int | None:
    if not isinstance(body, dict):
        return None
    candidates = [body.get("id"), body.get("ID"), body.get("ServiceModelID")]
    data = body.get("data")
    if isinstance(data, dict):
        candidates.append(data.get("id"))
    for value in candidates:
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value
    return None


class ServiceRegistry:
    def __init__(
        self,
        registry_url: str,
        service_name: str,
        service_address: str,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.registry_url = registry_url.rstrip("/")
        self.service_name = service_name
        self.service_address = service_address
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def register(self, methods: Iterable[str]) -> int:
        """Announce this service and its priced methods; returns the directory's service id."""
        try:
            response = self._client.post(
                f"{self.registry_url}/server",
                json={"ServiceName": self.service_name, "address": self.service_address},
            )
        except httpx.HTTPError as exc:
            raise RegistrationError(f"Failed to reach registry service: {exc}") from exc
        if response.status_code >= 400:
            raise RegistrationError(f"Registry service rejected registration: {response.status_code}")

        try:
            service_id = _extract_service_id(response.json())
        except ValueError:
            service_id = None
        if service_id is None:
            raise RegistrationError("Unable to determine service id from registry response")

        for method in methods:
            try:
                method_response = self._client.post(
                    f"{self.registry_url}/method",
                    json={"MethodName": method, "IsPrivate": False, "ServiceModelID": service_id},
                )
            except httpx.HTTPError as exc:
                raise RegistrationError(f"Failed to register method '{method}': {exc}") from exc
            if method_response.status_code >= 400:
                raise RegistrationError(
                    f"Failed to register method '{method}': {method_response.status_code}"
                )
            logger.debug("Registered method %s for service %s", method, service_id)

        return service_id
