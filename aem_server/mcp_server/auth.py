"""Credentials and CSRF tokens shared by every request to AEM."""

import asyncio
import base64
import logging
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from aem_server.mcp_server.config import AuthType, Config
from aem_server.mcp_server.errors import ConfigurationError, UpstreamAuthError

logger = logging.getLogger(__name__)

# A token is treated as expired this many seconds before IMS expires it
TOKEN_EXPIRY_MARGIN = 60
DEFAULT_EXPIRES_IN = 3600

CSRF_TOKEN_PATH = "/libs/granite/csrf/token.json"
CSRF_HEADER = "CSRF-Token"


@dataclass(frozen=True)
class BasicCredential:
    username: str
    password: str

    def header(self) -> str:
        encoded = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
        return f"Basic {encoded}"


@dataclass(frozen=True)
class BearerCredential:
    token: str
    expires_at: float = math.inf

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at

    def header(self) -> str:
        return f"Bearer {self.token}"


Credential = BasicCredential | BearerCredential


class _Coalescer:
    """Runs at most one instance of a coroutine at a time.

    Callers arriving while a run is in flight await that run's outcome
    (result or exception) instead of starting another.
    """

    def __init__(self) -> None:
        self._task: asyncio.Task | None = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, factory: Callable[[], Awaitable]):
        if not self.in_flight:
            self._task = asyncio.ensure_future(factory())
        # shield: one cancelled caller must not abort the run for the others
        return await asyncio.shield(self._task)


class CredentialProvider:
    """Produces the Authorization header for outgoing requests.

    Owns the bearer-token lifecycle in ``oauth`` mode: tokens are exchanged
    with IMS on first use and again once they expire, and concurrent callers
    share a single exchange.
    """

    def __init__(
        self,
        config: Config,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.transport = transport
        self.clock = clock
        self._credential: Credential | None = None
        self._refresh = _Coalescer()

    @property
    def credential(self) -> Credential | None:
        return self._credential

    async def resolve_authorization_header(self) -> str:
        """Return the Authorization value, refreshing the bearer token if needed."""
        auth_type = self.config.auth_type

        if auth_type == AuthType.OAUTH:
            credential = self._credential
            if isinstance(credential, BearerCredential) and credential.is_valid(
                self.clock()
            ):
                return credential.header()
            credential = await self._refresh.run(self._refresh_token)
            return credential.header()

        if self._credential is None:
            self._credential = self._static_credential()
        return self._credential.header()

    def invalidate(self) -> None:
        """Forget the cached credential; the next resolve rebuilds or refreshes it."""
        self._credential = None

    def _static_credential(self) -> Credential:
        if self.config.auth_type == AuthType.TOKEN:
            if not self.config.access_token:
                raise ConfigurationError(
                    "AEM_ACCESS_TOKEN is required when AEM_AUTH_TYPE=token"
                )
            return BearerCredential(token=self.config.access_token)

        if not self.config.username or not self.config.password:
            raise ConfigurationError(
                "AEM_USERNAME and AEM_PASSWORD are required when AEM_AUTH_TYPE=basic"
            )
        return BasicCredential(self.config.username, self.config.password)

    async def _refresh_token(self) -> BearerCredential:
        # Another caller may have finished a refresh while this one was queued
        credential = self._credential
        if isinstance(credential, BearerCredential) and credential.is_valid(
            self.clock()
        ):
            return credential

        token_data = await exchange_client_credentials(self.config, self.transport)

        expires_in = token_data.get("expires_in") or DEFAULT_EXPIRES_IN
        credential = BearerCredential(
            token=token_data["access_token"],
            expires_at=self.clock() + (float(expires_in) - TOKEN_EXPIRY_MARGIN),
        )
        self._credential = credential
        logger.info(f"Obtained IMS access token (expires in {expires_in}s)")
        return credential


async def exchange_client_credentials(
    config: Config, transport: httpx.AsyncBaseTransport | None = None
) -> dict:
    """Exchange the configured client credentials for an IMS access token.

    Returns the decoded token response (``access_token``, ``expires_in``,
    ``token_type``).
    """
    if not config.client_id or not config.client_secret:
        raise ConfigurationError(
            "AEM_CLIENT_ID and AEM_CLIENT_SECRET are required when AEM_AUTH_TYPE=oauth"
        )
    if not config.scopes:
        raise ConfigurationError("AEM_SCOPES is required when AEM_AUTH_TYPE=oauth")

    form = {
        "grant_type": "client_credentials",
        "client_id": config.client_id,
        "client_secret": config.client_secret,
        "scope": config.scopes,
    }

    logger.debug(f"Requesting IMS token from {config.ims_token_url}")
    async with httpx.AsyncClient(
        timeout=config.request_timeout, transport=transport
    ) as client:
        response = await client.post(config.ims_token_url, data=form)

    if response.status_code >= 400:
        raise UpstreamAuthError(response.status_code, response.text)

    try:
        token_data = response.json()
    except ValueError:
        raise UpstreamAuthError(response.status_code, response.text)
    if not isinstance(token_data, dict) or not token_data.get("access_token"):
        raise UpstreamAuthError(response.status_code, response.text)
    return token_data


class SecurityTokenCache:
    """Caches the CSRF token AEM expects on state-changing requests.

    Fetching is best effort: when the token cannot be obtained the cache
    answers with an empty string and the request goes out without the
    header, leaving AEM to accept or reject it.
    """

    def __init__(
        self,
        config: Config,
        credentials: CredentialProvider,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.credentials = credentials
        self.transport = transport
        self._token: str | None = None
        self._fetch = _Coalescer()

    async def resolve_security_token(self) -> str:
        if self._token:
            return self._token
        return await self._fetch.run(self._fetch_token)

    def invalidate(self) -> None:
        self._token = None

    async def _fetch_token(self) -> str:
        if self._token:
            return self._token

        base_url = (self.config.base_url or "").rstrip("/")
        url = f"{base_url}{CSRF_TOKEN_PATH}"

        try:
            authorization = await self.credentials.resolve_authorization_header()
            async with httpx.AsyncClient(
                timeout=self.config.request_timeout, transport=self.transport
            ) as client:
                response = await client.get(
                    url,
                    headers={"Authorization": authorization, "Accept": "application/json"},
                )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, UpstreamAuthError, ValueError) as e:
            logger.warning(f"Could not fetch CSRF token from {url}: {e}")
            return ""

        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            logger.warning(f"CSRF token response from {url} carried no token")
            return ""

        self._token = token
        return token


class AEMSession:
    """Process-wide authentication state for one AEM instance.

    Constructed once at startup and handed to the client; the credential and
    CSRF caches it owns are only mutated through their refresh paths.
    """

    def __init__(
        self,
        config: Config,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.transport = transport
        self.credentials = CredentialProvider(config, transport=transport, clock=clock)
        self.security_tokens = SecurityTokenCache(
            config, self.credentials, transport=transport
        )

    @property
    def base_url(self) -> str:
        if not self.config.base_url:
            raise ConfigurationError("AEM_BASE_URL environment variable is required")
        return self.config.base_url.rstrip("/")
