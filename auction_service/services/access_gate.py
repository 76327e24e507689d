"""Authorization of priced methods against the external payment service."""

import logging
from dataclasses import dataclass

import httpx
from fastapi import status

logger = logging.getLogger(__name__)

PRICED_METHODS = ("PlaceBid", "CreateLot", "UpdateLot", "DeleteLot")


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    status_code: int
    message: str


class AccessGate:
    def __init__(
        self,
        payment_service_url: str,
        service_name: str,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.payment_service_url = payment_service_url.rstrip("/")
        self.service_name = service_name
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def check(self, token: str, method_name: str) -> AccessDecision:
        """Ask the payment service whether ``token`` may call ``method_name``.

        Only an explicit ``{"allowed": true}`` grants access.
        """
        payload = {
            "token": token,
            "serviceName": self.service_name,
            "methodName": method_name,
        }
        try:
            response = self._client.post(f"{self.payment_service_url}/token/check", json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Payment service unreachable for %s: %s", method_name, exc)
            return AccessDecision(False, status.HTTP_502_BAD_GATEWAY, "Payment service unavailable")

        if response.status_code >= 500:
            logger.warning("Payment service returned %s for %s", response.status_code, method_name)
            return AccessDecision(False, status.HTTP_502_BAD_GATEWAY, "Payment service error")
        if response.status_code == 401:
            return AccessDecision(False, status.HTTP_401_UNAUTHORIZED, "Invalid token")
        if response.status_code >= 400:
            return AccessDecision(False, status.HTTP_403_FORBIDDEN, "Token validation failed")

        try:
            body = response.json()
        except ValueError:
            logger.warning("Payment service sent a non-JSON body for %s", method_name)
            return AccessDecision(False, status.HTTP_502_BAD_GATEWAY, "Payment service returned an invalid response")
        if not isinstance(body, dict):
            return AccessDecision(False, status.HTTP_502_BAD_GATEWAY, "Payment service returned an invalid response")

        if body.get("allowed") is not True:
            return AccessDecision(False, status.HTTP_403_FORBIDDEN, "Access denied")
        return AccessDecision(True, status.HTTP_200_OK, "Allowed")
