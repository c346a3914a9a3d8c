"""Routes named tool calls to operations and shapes their outcome."""

import json
import time
from typing import Any

from pydantic import ValidationError

from aem_server.core.logging import get_logger
from aem_server.mcp_server.client import AEMClient
from aem_server.mcp_server.errors import AEMServerError, SchemaViolationError
from aem_server.mcp_server.tools import OPERATIONS, OperationSpec
from aem_server.models.api.requests import ToolResult

logger = get_logger(__name__)


def success_result(payload: Any) -> ToolResult:
    """Wrap a payload: strings verbatim, anything else as indented JSON."""
    if isinstance(payload, str):
        text = payload
    else:
        text = json.dumps(payload, indent=2, ensure_ascii=False)
    return ToolResult(is_error=False, content=text)


def error_result(message: str) -> ToolResult:
    return ToolResult(is_error=True, content=f"Error: {message}")


class ToolDispatcher:
    """Validates arguments, runs the matching operation, never raises."""

    def __init__(
        self,
        client: AEMClient,
        operations: dict[str, OperationSpec] | None = None,
    ):
        self.client = client
        self.operations = OPERATIONS if operations is None else operations

    def validate(self, name: str, arguments: dict[str, Any] | None):
        """Return the validated argument model for ``name``.

        Raises:
            SchemaViolationError: If the arguments do not match the tool's schema
        """
        spec = self.operations[name]
        try:
            return spec.arguments.model_validate(arguments or {})
        except ValidationError as e:
            errors = [
                {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
                for error in e.errors()
            ]
            raise SchemaViolationError(name, errors)

    async def dispatch(self, name: str, arguments: dict[str, Any] | None) -> ToolResult:
        """Invoke tool ``name`` and return a uniform result."""
        spec = self.operations.get(name)
        if spec is None:
            return error_result(f"Unknown tool '{name}'")

        started = time.monotonic()
        try:
            args = self.validate(name, arguments)
            payload = await spec.run(self.client, args)
        except SchemaViolationError as e:
            logger.warning("Rejected tool arguments", tool=name, error=e.message)
            return error_result(e.message)
        except AEMServerError as e:
            logger.warning(
                "Tool call failed",
                tool=name,
                error_type=type(e).__name__,
                status_code=e.status_code,
            )
            return error_result(e.message)
        except Exception as e:
            logger.error(f"Tool execution failed: {e}", exc_info=True, tool=name)
            return error_result(f"Tool execution failed - {str(e)}")

        logger.info(
            "Tool call succeeded",
            tool=name,
            duration_ms=round((time.monotonic() - started) * 1000),
        )
        return success_result(payload)
