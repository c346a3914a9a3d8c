"""Unit tests for the AEM request executor."""

import httpx
import pytest

from aem_server.mcp_server.auth import CSRF_HEADER, CSRF_TOKEN_PATH, AEMSession
from aem_server.mcp_server.client import AEMClient, dict_or_pairs
from aem_server.mcp_server.errors import ConfigurationError, UpstreamRequestError
from aem_server.models.api.requests import HttpMethod, RequestDescriptor


class TestExecute:
    """Test request execution and response handling."""

    @pytest.mark.asyncio
    async def test_get_decodes_json(self, aem_client, fake_aem):
        """JSON responses are decoded."""
        fake_aem.add("GET", "/content/site.1.json", json_body={"jcr:primaryType": "cq:Page"})

        result = await aem_client.execute(RequestDescriptor(path="/content/site.1.json"))

        assert result == {"jcr:primaryType": "cq:Page"}
        request = fake_aem.requests[0]
        assert str(request.url) == "https://author.example.com/content/site.1.json"
        assert request.headers["Authorization"].startswith("Basic ")
        assert request.headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_text_response_returned_raw(self, aem_client, fake_aem):
        """Non-JSON responses come back as text."""
        fake_aem.add("GET", CSRF_TOKEN_PATH, json_body={"token": "csrf"})
        fake_aem.add(
            "POST",
            "/bin/wcmcommand",
            text="<html>Page created</html>",
            headers={"content-type": "text/html"},
        )

        result = await aem_client.execute(
            RequestDescriptor(method=HttpMethod.POST, path="/bin/wcmcommand", form=[("cmd", "x")])
        )

        assert result == "<html>Page created</html>"

    @pytest.mark.asyncio
    async def test_query_pairs_keep_order(self, aem_client, fake_aem):
        """Query parameters are emitted in descriptor order."""
        fake_aem.add("GET", "/bin/querybuilder.json", json_body={"hits": []})

        await aem_client.execute(
            RequestDescriptor(
                path="/bin/querybuilder.json",
                query=[("p.limit", "20"), ("p.offset", "0"), ("path", "/content")],
            )
        )

        assert fake_aem.requests[0].url.params.multi_items() == [
            ("p.limit", "20"),
            ("p.offset", "0"),
            ("path", "/content"),
        ]

    @pytest.mark.asyncio
    async def test_failure_carries_status_and_body(self, aem_client, fake_aem):
        """Non-success responses raise UpstreamRequestError."""
        fake_aem.add("GET", "/content/secret.json", status=403, text="Forbidden by ACL")

        with pytest.raises(UpstreamRequestError) as exc_info:
            await aem_client.execute(RequestDescriptor(path="/content/secret.json"))

        error = exc_info.value
        assert error.status_code == 403
        assert error.status_text == "Forbidden"
        assert error.body == "Forbidden by ACL"
        assert error.message == "AEM API error 403 Forbidden: Forbidden by ACL"

    @pytest.mark.asyncio
    async def test_missing_base_url(self, fake_aem, config_factory):
        """An unset base URL fails before any request."""
        client = AEMClient(AEMSession(config_factory(base_url=None), transport=fake_aem.transport))

        with pytest.raises(ConfigurationError):
            await client.execute(RequestDescriptor(path="/content.1.json"))
        assert fake_aem.requests == []

    @pytest.mark.asyncio
    async def test_timeout(self, aem_client, fake_aem):
        """Timeouts surface as UpstreamRequestError."""

        async def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        fake_aem.add_handler("GET", "/content.1.json", slow)

        with pytest.raises(UpstreamRequestError, match="Request timeout"):
            await aem_client.execute(RequestDescriptor(path="/content.1.json"))

    @pytest.mark.asyncio
    async def test_connection_error(self, aem_client, fake_aem):
        """Connection failures surface as UpstreamRequestError."""

        async def refused(request):
            raise httpx.ConnectError("refused", request=request)

        fake_aem.add_handler("GET", "/content.1.json", refused)

        with pytest.raises(UpstreamRequestError, match="Cannot connect to AEM"):
            await aem_client.execute(RequestDescriptor(path="/content.1.json"))


class TestSecurityTokenHeader:
    """Test CSRF header handling on mutating requests."""

    @pytest.mark.asyncio
    async def test_mutating_request_carries_token(self, aem_client, fake_aem):
        fake_aem.add("GET", CSRF_TOKEN_PATH, json_body={"token": "csrf-123"})
        fake_aem.add("POST", "/bin/replicate.json", json_body={"status": "ok"})

        await aem_client.execute(
            RequestDescriptor(method=HttpMethod.POST, path="/bin/replicate.json", form=[])
        )

        request = fake_aem.calls("POST", "/bin/replicate.json")[0]
        assert request.headers[CSRF_HEADER] == "csrf-123"

    @pytest.mark.asyncio
    async def test_header_omitted_when_token_unavailable(self, aem_client, fake_aem):
        """A failed CSRF fetch does not block the request."""
        fake_aem.add("GET", CSRF_TOKEN_PATH, status=404, text="missing")
        fake_aem.add("PUT", "/api/assets/content/dam/cf", json_body={"ok": True})

        result = await aem_client.execute(
            RequestDescriptor(
                method=HttpMethod.PUT, path="/api/assets/content/dam/cf", json_body={"a": 1}
            )
        )

        assert result == {"ok": True}
        request = fake_aem.calls("PUT", "/api/assets/content/dam/cf")[0]
        assert CSRF_HEADER not in request.headers
        assert request.headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_read_request_skips_token(self, aem_client, fake_aem):
        fake_aem.add("GET", "/content.1.json", json_body={})

        await aem_client.execute(RequestDescriptor(path="/content.1.json"))

        assert fake_aem.calls("GET", CSRF_TOKEN_PATH) == []
        assert CSRF_HEADER not in fake_aem.requests[0].headers

    @pytest.mark.asyncio
    async def test_form_body_encoding(self, aem_client, fake_aem):
        fake_aem.add("GET", CSRF_TOKEN_PATH, json_body={"token": "t"})
        fake_aem.add("POST", "/content/site/jcr:content", text="", headers={"content-type": "text/html"})

        await aem_client.execute(
            RequestDescriptor(
                method=HttpMethod.POST,
                path="/content/site/jcr:content",
                form=[("_charset_", "utf-8"), ("jcr:title", "Hello")],
            )
        )

        request = fake_aem.calls("POST", "/content/site/jcr:content")[0]
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert fake_aem.form_pairs(request) == [("_charset_", "utf-8"), ("jcr:title", "Hello")]


class TestRequestDescriptor:
    def test_mutating_flag(self):
        assert RequestDescriptor(method=HttpMethod.POST, path="/x").mutating
        assert RequestDescriptor(method=HttpMethod.PUT, path="/x").mutating
        assert not RequestDescriptor(path="/x").mutating

    def test_rejects_two_bodies(self):
        with pytest.raises(ValueError):
            RequestDescriptor(method=HttpMethod.POST, path="/x", form=[], json_body={})


def test_dict_or_pairs_groups_repeated_keys():
    assert dict_or_pairs([("a", "1"), ("b", "2"), ("a", "3")]) == {"a": ["1", "3"], "b": "2"}
