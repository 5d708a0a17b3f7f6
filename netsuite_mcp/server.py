"""MCP server exposing NetSuite metadata and SuiteQL tools over stdio."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import IO, Any, Callable, Optional

from .client import ClientOptions, NetSuiteClient, NetSuiteError, SuiteQLResponse
from .schematree import Schema, SchemaError

SERVER_NAME = "NetSuite MCP Server"
SERVER_VERSION = "1.0.0"
SUPPORTED_PROTOCOL_VERSIONS = ("2025-03-26", "2024-11-05")
LATEST_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[0]

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000
DEFAULT_OFFSET = 0
SAMPLE_FIELD_COUNT = 10

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602

INSTRUCTIONS = """This is a NetSuite MCP Server that provides access to NetSuite data through two main tools:

IMPORTANT WORKFLOW:
1. ALWAYS use 'netsuite_get_metadata' FIRST to understand the schema of NetSuite record types before querying
2. Review the returned metadata to verify field names, data types, and structure
3. Then use 'netsuite_run_suiteql' with the verified field names from the metadata

TOOL USAGE GUIDELINES:

netsuite_get_metadata:
- Use this tool to get the schema/structure of NetSuite record types
- Common record types: customer, item, transaction, salesorder, purchaseorder, invoice, employee, vendor
- This helps you understand what fields are available and their correct names
- Always call this before writing SuiteQL queries for unfamiliar record types

netsuite_run_suiteql:
- Use this tool to execute SuiteQL queries against NetSuite
- MUST be preceded by netsuite_get_metadata to verify field names and structure
- Use proper NetSuite field names (often different from UI labels)
- Table names are typically lowercase (e.g., 'customer', 'item', 'transaction')
- Include LIMIT clauses to avoid retrieving too much data
- Be mindful of NetSuite's query performance considerations

Example workflow:
1. Call netsuite_get_metadata with record_type="customer" 
2. Review the returned fields and their types
3. Construct your SuiteQL query using the verified field names
4. Execute the query with netsuite_run_suiteql"""

METADATA_TOOL = {
    "name": "netsuite_get_metadata",
    "description": "Get metadata (schema) for a NetSuite record type",
    "inputSchema": {
        "type": "object",
        "properties": {
            "record_type": {
                "type": "string",
                "description": "The NetSuite record type to get metadata for "
                "(e.g., 'customer', 'item', 'transaction')",
            },
            "included_fields": {
                "type": "array",
                "description": "Optional list of specific fields to include in the metadata. "
                "If not provided, all available fields will be returned.",
            },
        },
        "required": ["record_type"],
    },
}

SUITEQL_TOOL = {
    "name": "netsuite_run_suiteql",
    "description": "Execute a SuiteQL query against NetSuite and return the results",
    "inputSchema": {
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "The SuiteQL query to execute "
                "(e.g., 'SELECT id, companyname FROM customer LIMIT 10')",
            },
            "limit": {
                "type": "number",
                "description": "Maximum number of results to return (default: 100, max: 1000)",
            },
            "offset": {
                "type": "number",
                "description": "Number of records to skip for pagination (default: 0)",
            },
        },
        "required": ["query"],
    },
}

log = logging.getLogger(__name__)


@dataclass
class Config:
    """Everything the server needs to start."""

    netsuite_options: ClientOptions = field(default_factory=ClientOptions)
    record_types: list[str] = field(default_factory=list)


def load_config(environ: Optional[Mapping[str, str]] = None) -> Config:
    """Read the configuration from environment variables and the private key file."""
    env = os.environ if environ is None else environ

    key_path = env.get("NETSUITE_PRIVATE_KEY_PATH", "")
    private_key = b""
    if key_path:
        with open(key_path, "rb") as handle:
            private_key = handle.read()

    options = ClientOptions(
        account_id=env.get("NETSUITE_ACCOUNT_ID", ""),
        client_id=env.get("NETSUITE_CLIENT_ID", ""),
        client_secret=env.get("NETSUITE_CLIENT_SECRET", ""),
        certificate_id=env.get("NETSUITE_CERTIFICATE_ID", ""),
        private_key_bytes=private_key,
        private_key_password=env.get("NETSUITE_PRIVATE_KEY_PASSWORD", ""),
    )

    record_types = [
        part.strip()
        for part in env.get("NETSUITE_RECORD_TYPES", "").split(",")
        if part.strip()
    ]
    return Config(netsuite_options=options, record_types=record_types)


@dataclass
class ToolResult:
    """The outcome of a tool call: a text payload, possibly flagged as an error."""

    text: str
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return the MCP wire form of the result."""
        return {
            "content": [{"type": "text", "text": self.text}],
            "isError": self.is_error,
        }


def _field_sample(fields: Mapping[str, Any], summary: dict[str, Any]) -> None:
    total = len(fields)
    summary["total_fields"] = total
    summary["sample_fields"] = list(fields)[:SAMPLE_FIELD_COUNT]
    if total > SAMPLE_FIELD_COUNT:
        summary["note"] = (
            f"Showing first {SAMPLE_FIELD_COUNT} fields out of {total} total fields"
        )


def metadata_summary(metadata: Any) -> dict[str, Any]:
    """Summarise a decoded metadata document; anything else yields only a description."""
    summary: dict[str, Any] = {"description": "NetSuite record metadata schema"}
    if isinstance(metadata, Mapping):
        properties = metadata.get("properties")
        if isinstance(properties, Mapping):
            _field_sample(properties, summary)
        if "type" in metadata:
            summary["schema_type"] = metadata["type"]
    return summary


def suiteql_summary(results: SuiteQLResponse) -> dict[str, Any]:
    """Summarise a page of SuiteQL results."""
    summary: dict[str, Any] = {
        "description": "NetSuite SuiteQL query results",
        "count": results.count,
        "offset": results.offset,
        "total": results.total_results,
        "hasMore": results.has_more,
    }
    if results.items and isinstance(results.items[0], Mapping):
        _field_sample(results.items[0], summary)
    return summary


def _json_default(value: Any) -> Any:
    if isinstance(value, Schema):
        return value.to_dict()
    raise TypeError(f"json: unsupported type: {type(value).__name__}")


def _to_json(value: Any) -> str:
    return json.dumps(
        value, indent=2, sort_keys=True, ensure_ascii=False, default=_json_default
    )


def _require_string(arguments: Mapping[str, Any], key: str) -> str:
    if key not in arguments:
        raise ValueError(f'required argument "{key}" not found')
    value = arguments[key]
    if not isinstance(value, str):
        raise ValueError(f'argument "{key}" is not a string')
    return value


def _number(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def handle_get_metadata(client: NetSuiteClient, arguments: Mapping[str, Any]) -> ToolResult:
    """Run the ``netsuite_get_metadata`` tool."""
    try:
        record_type = _require_string(arguments, "record_type")
    except ValueError as exc:
        return ToolResult(f"Invalid record_type parameter: {exc}", is_error=True)

    fields_arg = arguments.get("included_fields")
    included = (
        [name for name in fields_arg if isinstance(name, str)]
        if isinstance(fields_arg, list)
        else []
    )

    try:
        metadata = client.metadata(record_type, included)
    except (NetSuiteError, SchemaError) as exc:
        return ToolResult(
            f"Failed to get metadata for record type '{record_type}': {exc}",
            is_error=True,
        )

    response = {
        "record_type": record_type,
        "included_fields": included or None,
        "metadata_schema": metadata,
        "metadata_summary": metadata_summary(metadata),
    }
    try:
        return ToolResult(_to_json(response))
    except (TypeError, ValueError) as exc:
        return ToolResult(f"Failed to marshal response to JSON: {exc}", is_error=True)


def handle_run_suiteql(client: NetSuiteClient, arguments: Mapping[str, Any]) -> ToolResult:
    """Run the ``netsuite_run_suiteql`` tool."""
    try:
        query = _require_string(arguments, "query")
    except ValueError as exc:
        return ToolResult(f"Invalid query parameter: {exc}", is_error=True)

    limit = _number(arguments.get("limit"))
    limit = DEFAULT_LIMIT if limit is None else min(limit, MAX_LIMIT)
    offset = _number(arguments.get("offset"))
    offset = DEFAULT_OFFSET if offset is None else offset

    try:
        results = client.suiteql(query, limit, offset)
    except NetSuiteError as exc:
        return ToolResult(f"Failed to execute SuiteQL query: {exc}", is_error=True)

    response = {
        "query": query,
        "limit": limit,
        "offset": offset,
        "count": results.count,
        "totalResults": results.total_results,
        "hasMore": results.has_more,
        "items": results.items,
        "summary": suiteql_summary(results),
    }
    try:
        return ToolResult(_to_json(response))
    except (TypeError, ValueError) as exc:
        return ToolResult(f"Failed to marshal response to JSON: {exc}", is_error=True)


class _RpcError(Exception):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def _error_response(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "error": {"code": code, "message": message},
    }


class McpServer:
    """A JSON-RPC MCP server offering the NetSuite tools."""

    def __init__(self, client: NetSuiteClient) -> None:
        self._client = client
        self._tools: dict[str, tuple[dict[str, Any], Callable[..., ToolResult]]] = {
            METADATA_TOOL["name"]: (METADATA_TOOL, handle_get_metadata),
            SUITEQL_TOOL["name"]: (SUITEQL_TOOL, handle_run_suiteql),
        }
        self._methods: dict[str, Callable[[Mapping[str, Any]], dict[str, Any]]] = {
            "initialize": self._initialize,
            "ping": lambda params: {},
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }

    def _initialize(self, params: Mapping[str, Any]) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        version = (
            requested
            if requested in SUPPORTED_PROTOCOL_VERSIONS
            else LATEST_PROTOCOL_VERSION
        )
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {"listChanged": True}},
            "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
            "instructions": INSTRUCTIONS,
        }

    def _list_tools(self, params: Mapping[str, Any]) -> dict[str, Any]:
        return {"tools": [tool for tool, _ in self._tools.values()]}

    def _call_tool(self, params: Mapping[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str):
            raise _RpcError(INVALID_PARAMS, "tool name must be a string")
        entry = self._tools.get(name)
        if entry is None:
            raise _RpcError(INVALID_PARAMS, f"tool '{name}' not found")
        arguments = params.get("arguments")
        if not isinstance(arguments, Mapping):
            arguments = {}
        _, handler = entry
        return handler(self._client, arguments).to_dict()

    def handle_message(self, message: Any) -> Optional[dict[str, Any]]:
        """Handle one decoded JSON-RPC message; notifications yield ``None``."""
        if not isinstance(message, Mapping) or not isinstance(message.get("method"), str):
            request_id = message.get("id") if isinstance(message, Mapping) else None
            return _error_response(request_id, INVALID_REQUEST, "Invalid Request")

        is_notification = "id" not in message
        request_id = message.get("id")
        method = message["method"]
        params = message.get("params")
        if not isinstance(params, Mapping):
            params = {}

        if is_notification:
            return None

        handler = self._methods.get(method)
        if handler is None:
            return _error_response(
                request_id, METHOD_NOT_FOUND, f"Method {method} not found"
            )
        try:
            result = handler(params)
        except _RpcError as exc:
            return _error_response(request_id, exc.code, exc.message)
        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    def serve(self, stdin: IO[str], stdout: IO[str]) -> None:
        """Answer newline-delimited JSON-RPC messages until ``stdin`` ends."""
        for line in stdin:
            if not line.strip():
                continue
            try:
                message = json.loads(line)
            except ValueError:
                response: Optional[dict[str, Any]] = _error_response(
                    None, PARSE_ERROR, "Parse error"
                )
            else:
                response = self.handle_message(message)
            if response is not None:
                stdout.write(json.dumps(response, ensure_ascii=False) + "\n")
                stdout.flush()


def main(argv: Optional[list[str]] = None) -> int:
    """Start the NetSuite MCP server on standard input and output."""
    parser = argparse.ArgumentParser(
        prog="netsuite-mcp",
        description="Serve NetSuite metadata and SuiteQL tools over MCP stdio. "
        "Configuration is read from NETSUITE_* environment variables.",
    )
    parser.parse_args(argv)
    logging.basicConfig(stream=sys.stderr, level=logging.INFO)

    try:
        config = load_config()
    except OSError as exc:
        log.error("Failed to load configuration: %s", exc)
        raise SystemExit(1) from exc

    try:
        client = NetSuiteClient(config.netsuite_options)
    except NetSuiteError as exc:
        log.error("Failed to create NetSuite client: %s", exc)
        raise SystemExit(1) from exc

    server = McpServer(client)
    try:
        server.serve(sys.stdin, sys.stdout)
    except OSError as exc:
        log.error("Server error: %s", exc)
        raise SystemExit(1) from exc
    return 0