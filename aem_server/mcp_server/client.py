"""HTTP client for the AEM author REST API."""

import logging
from typing import Any

import httpx

from aem_server.mcp_server.auth import CSRF_HEADER, AEMSession
from aem_server.mcp_server.errors import UpstreamRequestError
from aem_server.models.api.requests import RequestDescriptor

# Decoded JSON for structured endpoints, raw text for everything else
APIResponse = dict | list | str | int | float | bool | None

logger = logging.getLogger(__name__)


class AEMClient:
    """Executes request descriptors against AEM using a shared session."""

    def __init__(self, session: AEMSession):
        """Initialize the client with the session that owns auth state."""
        self.session = session
        self.config = session.config

    async def execute(self, descriptor: RequestDescriptor) -> APIResponse:
        """Issue the described request and return the decoded response body.

        Raises:
            ConfigurationError: If the base URL or credentials are not configured
            UpstreamAuthError: If the IMS token exchange is rejected
            UpstreamRequestError: On a non-success status, timeout or connection failure
        """
        base_url = self.session.base_url
        url = f"{base_url}{descriptor.path}"

        headers = {
            "Authorization": await self.session.credentials.resolve_authorization_header(),
            "Accept": "application/json",
        }
        if descriptor.mutating:
            security_token = await self.session.security_tokens.resolve_security_token()
            if security_token:
                headers[CSRF_HEADER] = security_token

        request_kwargs: dict[str, Any] = {"headers": headers}
        if descriptor.query:
            request_kwargs["params"] = descriptor.query
        if descriptor.form is not None:
            request_kwargs["data"] = dict_or_pairs(descriptor.form)
        elif descriptor.json_body is not None:
            request_kwargs["json"] = descriptor.json_body

        logger.debug(f"{descriptor.method.value} {descriptor.path}")

        try:
            async with httpx.AsyncClient(
                timeout=self.config.request_timeout, transport=self.session.transport
            ) as client:
                response = await client.request(
                    descriptor.method.value, url, **request_kwargs
                )
        except httpx.TimeoutException:
            raise UpstreamRequestError(f"Request timeout: {url}", status_text="timeout")
        except httpx.ConnectError:
            raise UpstreamRequestError(
                f"Cannot connect to AEM at {base_url}", status_text="connection error"
            )
        except httpx.HTTPError as e:
            raise UpstreamRequestError(f"Request failed: {str(e)}")

        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> APIResponse:
        """Translate failures and decode the body by content type."""
        if not response.is_success:
            logger.warning(
                f"AEM returned {response.status_code} for "
                f"{response.request.method} {response.request.url.path}"
            )
            raise UpstreamRequestError.from_response(
                response.status_code, response.reason_phrase, response.text
            )

        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            try:
                return response.json()
            except ValueError:
                # AEM occasionally labels HTML error pages as JSON
                return response.text
        return response.text

    async def get(self, path: str, query: list[tuple[str, str]] | None = None):
        """Convenience wrapper for a plain GET."""
        return await self.execute(RequestDescriptor(path=path, query=query or []))


def dict_or_pairs(pairs: list[tuple[str, str]]) -> dict[str, str | list[str]]:
    """Group ordered form pairs into the mapping httpx expects.

    Repeated keys become lists; first-seen order is kept.
    """
    form: dict[str, str | list[str]] = {}
    for key, value in pairs:
        if key in form:
            existing = form[key]
            form[key] = [*existing, value] if isinstance(existing, list) else [existing, value]
        else:
            form[key] = value
    return form
