"""Error taxonomy shared by the gateway, the tools and every interface.

Each error carries a stable ``kind`` and renders itself to the JSON payload
returned to callers, so transports never have to inspect exception types.
"""

from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base class for every caller-visible failure."""

    kind = "gateway_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "kind": self.kind}


class PolicyRejection(GatewayError):
    """The query was blocked by the read-only policy and never reached the database."""

    kind = "policy_rejection"

    def __init__(self, rule: str, reason: str):
        super().__init__(f"unsafe query: {reason}")
        self.rule = rule
        self.reason = reason

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["rule"] = self.rule
        return payload


class ArgumentError(GatewayError):
    """A required tool argument is missing or has the wrong type."""

    kind = "argument_error"


class ExecutionError(GatewayError):
    """The database rejected or failed to run an allowed query.

    When the failure looks schema-shaped, ``schema`` holds a fresh snapshot of
    the catalog. If fetching that snapshot failed too, ``schema_error`` holds
    its message and both failures are reported together.
    """

    kind = "execution_error"

    def __init__(
        self,
        db_message: str,
        sqlstate: str | None = None,
        schema: dict[str, list[dict[str, str]]] | None = None,
        schema_error: str | None = None,
    ):
        super().__init__(f"Query failed: {db_message}")
        self.db_message = db_message
        self.sqlstate = sqlstate
        self.schema = schema
        self.schema_error = schema_error

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.sqlstate:
            payload["sqlstate"] = self.sqlstate
        if self.schema is not None:
            payload["schema"] = self.schema
        if self.schema_error is not None:
            payload["schema_error"] = self.schema_error
        return payload


class QueryTimeoutError(ExecutionError):
    """The statement did not finish within the configured timeout."""

    kind = "query_timeout"


class SchemaFetchError(GatewayError):
    """A catalog query failed while listing tables or describing columns."""

    kind = "schema_fetch_error"


class ConnectivityError(GatewayError):
    """The connection pool could not be opened or failed its liveness check."""

    kind = "connectivity_error"


class MarshalError(GatewayError):
    """A response could not be serialized."""

    kind = "marshal_error"
