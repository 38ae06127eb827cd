import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from clockify_auto.constants.failure_reasons import FailureReason

log = logging.getLogger(__name__)


class ConnectorError(Exception):
    """Base error for remote service calls."""

    reason = FailureReason.OTHER

    def __init__(self, message: str, service: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.service = service
        self.status_code = status_code


class AuthenticationError(ConnectorError):
    """Invalid or expired credentials (401/403). Fatal for the whole run."""

    reason = FailureReason.AUTHENTICATION


class ValidationError(ConnectorError):
    """Request rejected as malformed (400/422) or invalid before sending."""

    reason = FailureReason.VALIDATION


class NotFoundError(ConnectorError):
    """Referenced remote object or endpoint does not exist (404)."""

    reason = FailureReason.NOT_FOUND


class TransientError(ConnectorError):
    """Timeouts, connection failures, rate limiting and server errors."""

    reason = FailureReason.TRANSIENT


def _error_message(response: httpx.Response) -> str:
    """Extract the remote validation message, falling back to the raw body."""
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict):
        for key in ("message", "errorMessages", "error"):
            value = data.get(key)
            if value:
                return "; ".join(value) if isinstance(value, list) else str(value)
    return response.text or response.reason_phrase


class BaseConnector(ABC):
    """Abstract Base Class for all connectors."""

    service_name = "Remote service"

    def __init__(self, config: Dict[str, Any]):
        self.config = config

    async def _request(self, client: httpx.AsyncClient, method: str, path: str, **kwargs) -> Any:
        """
        Perform a request and translate failures into the connector error taxonomy.
        Returns the decoded JSON body, or None for empty responses.
        """
        service = self.service_name
        try:
            log.trace(f"{service} API {method} {path} params={kwargs.get('params', 'none')}")
            response = await client.request(method, path, **kwargs)
            log.trace(f"{service} API response: {response.status_code}")
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            url = str(e.request.url)
            detail = _error_message(e.response)
            log.debug(f"{service} API raw response body: {e.response.text}")

            if status in (401, 403):
                error_msg = f"{service} authentication failed (HTTP {status}). Please check your API key."
                log.error(error_msg)
                raise AuthenticationError(error_msg, service=service, status_code=status) from e
            elif status in (400, 422):
                error_msg = f"Invalid request to {service}: {detail}"
                log.error(error_msg)
                raise ValidationError(error_msg, service=service, status_code=status) from e
            elif status == 404:
                error_msg = f"{service} resource not found: {url}"
                log.error(error_msg)
                raise NotFoundError(error_msg, service=service, status_code=status) from e
            else:
                error_msg = f"{service} HTTP {status} error for {url}: {detail}"
                log.error(error_msg)
                raise TransientError(error_msg, service=service, status_code=status) from e
        except httpx.RequestError as e:
            error_msg = f"{service} request error for {method} {path}: {e!r}"
            log.error(error_msg)
            raise TransientError(error_msg, service=service) from e

        if not response.content:
            return None
        return response.json()

    @abstractmethod
    async def validate_connection(self) -> bool:
        """Validates the connection to the external system."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Releases the underlying HTTP client."""
        pass
