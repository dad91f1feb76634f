"""HTTP provider gateway."""
import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from pydantic import ValidationError

from medaid.config import settings
from medaid.exceptions import ProviderUnavailableException
from medaid.gateways.base import ProviderGateway
from medaid.models.enums import ClaimStatus
from medaid.schemas.claim import ClaimSubmissionRequest
from medaid.schemas.gateway import ProviderResult
from medaid.schemas.membership import MembershipValidationResponse
from medaid.schemas.provider import ProviderConfig
from medaid.utils.logging_config import get_logger

logger = get_logger(__name__)


class _TransientProviderError(Exception):
    """A failure worth retrying (timeouts, connection errors, 5xx)."""


class HttpProviderGateway(ProviderGateway):
    """
    Talks to a provider's claims API over HTTPS with JSON bodies.

    Transient failures are retried with exponential backoff; once the retry
    budget is spent a ``ProviderUnavailableException`` is raised. Client
    errors (4xx) are not retried.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.timeout = settings.PROVIDER_HTTP_TIMEOUT_SECONDS if timeout is None else timeout
        self.max_retries = settings.PROVIDER_MAX_RETRIES if max_retries is None else max_retries
        self.backoff_seconds = (
            settings.PROVIDER_RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        )
        self.transport = transport
        self._sleep = sleep

    def _headers(self, provider: ProviderConfig) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if provider.api_key:
            headers["Authorization"] = f"Bearer {provider.api_key}"
        return headers

    async def _post_once(self, provider: ProviderConfig, path: str, payload: Dict[str, Any]) -> httpx.Response:
        url = provider.api_endpoint.rstrip("/") + path
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=payload, headers=self._headers(provider))
        except httpx.TransportError as exc:
            raise _TransientProviderError(f"{exc.__class__.__name__}: {exc}") from exc

        if response.status_code >= 500:
            raise _TransientProviderError(f"HTTP {response.status_code} from provider")
        return response

    async def _post(self, provider: ProviderConfig, path: str, payload: Dict[str, Any]) -> httpx.Response:
        attempts = self.max_retries + 1
        last_error = ""
        for attempt in range(attempts):
            try:
                return await self._post_once(provider, path, payload)
            except _TransientProviderError as exc:
                last_error = str(exc)
                logger.warning(
                    f"Provider {provider.code} call failed (attempt {attempt + 1}/{attempts}): {last_error}",
                    extra={"extra_fields": {"provider_code": provider.code, "path": path}},
                )
                if attempt + 1 < attempts:
                    await self._sleep(self.backoff_seconds * (2 ** attempt))

        raise ProviderUnavailableException(provider.code, attempts, last_error)

    @staticmethod
    def _error_messages(response: httpx.Response) -> list:
        try:
            body = response.json()
        except ValueError:
            return [response.text[:500] or f"HTTP {response.status_code}"]
        if isinstance(body, dict):
            errors = body.get("errors") or [body.get("message") or f"HTTP {response.status_code}"]
            return [str(error) for error in errors]
        return [str(body)[:500]]

    async def submit_claim(
        self,
        provider: ProviderConfig,
        request: ClaimSubmissionRequest,
        claim_number: str,
    ) -> ProviderResult:
        payload = request.model_dump(mode="json", by_alias=True)
        payload["claimNumber"] = claim_number

        response = await self._post(provider, "/claims", payload)

        if response.status_code >= 400:
            errors = self._error_messages(response)
            logger.warning(
                f"Provider {provider.code} refused claim {claim_number}: HTTP {response.status_code}",
                extra={"extra_fields": {"errors": errors}},
            )
            return ProviderResult(
                success=False,
                status=ClaimStatus.PENDING_REVIEW.value,
                message="Provider rejected the submission - claim routed to manual review",
                errors=errors,
            )

        try:
            return ProviderResult.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.error(
                f"Unreadable response from provider {provider.code} for {claim_number}: {exc}",
            )
            return ProviderResult(
                success=False,
                status=ClaimStatus.PENDING_REVIEW.value,
                message="Provider response could not be read - claim routed to manual review",
                errors=["Malformed provider response"],
            )

    async def validate_membership(
        self,
        provider: ProviderConfig,
        membership_number: str,
        dependent_code: Optional[str] = None,
    ) -> MembershipValidationResponse:
        payload = {"membershipNumber": membership_number, "dependentCode": dependent_code}
        response = await self._post(provider, "/members/validate", payload)

        if response.status_code in (404, 422):
            return MembershipValidationResponse(
                valid=False,
                message="Invalid membership number or membership expired",
            )
        response.raise_for_status()
        return MembershipValidationResponse.model_validate(response.json())
