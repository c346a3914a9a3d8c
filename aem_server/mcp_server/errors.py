"""Exceptions raised by the AEM MCP server."""


class AEMServerError(Exception):
    """Base exception for failures talking to AEM or its identity provider."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(AEMServerError):
    """A setting required for the requested operation is missing."""


class UpstreamAuthError(AEMServerError):
    """The identity provider rejected the client-credentials exchange."""

    def __init__(self, status_code: int, body: str):
        self.body = body
        super().__init__(
            f"IMS token exchange failed ({status_code}): {body}",
            status_code=status_code,
            details={"body": body},
        )


class UpstreamRequestError(AEMServerError):
    """AEM answered with a non-success status, or the call never completed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        status_text: str = "",
        body: str = "",
    ):
        self.status_text = status_text
        self.body = body
        super().__init__(
            message,
            status_code=status_code,
            details={"status_text": status_text, "body": body},
        )

    @classmethod
    def from_response(cls, status_code: int, status_text: str, body: str):
        """Build the error for a completed request with a failing status."""
        return cls(
            f"AEM API error {status_code} {status_text}: {body}",
            status_code=status_code,
            status_text=status_text,
            body=body,
        )


class SchemaViolationError(AEMServerError):
    """Tool arguments did not match the tool's argument schema."""

    def __init__(self, tool_name: str, errors: list[dict]):
        self.errors = errors
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ())) or 'arguments'}: "
            f"{error.get('msg', 'invalid value')}"
            for error in errors
        )
        super().__init__(
            f"Invalid arguments for {tool_name}: {problems}",
            details={"errors": errors},
        )
