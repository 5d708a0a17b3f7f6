# netsuite-mcp

A Model Context Protocol (MCP) server that gives an assistant read access to
NetSuite through two tools:

- `netsuite_get_metadata` returns the JSON schema of a record type, such as
  `customer`, `item` or `transaction`. It takes a required `record_type` and
  an optional `included_fields` list. Alongside the schema it returns a short
  summary: the field count, up to ten sample field names and the schema type.
- `netsuite_run_suiteql` runs a SuiteQL query and returns the rows with
  paging details (`count`, `totalResults`, `hasMore`) and a summary of the
  first row's fields. `limit` defaults to 100 and is capped at 1000.
  `offset` defaults to 0.

Metadata is read from the account's metadata catalog. When the catalog has
no schema for a record type, the client runs `SELECT * FROM <record_type>`
for one row and builds an object schema from its columns and from any
`included_fields`, each typed as a nullable string. Schemas are cached per
client, so each record type is fetched once for the life of the server.

## Installation

```
pip install netsuite-mcp
```

## Configuration

The server signs in with OAuth 2.0 client credentials and a PS256-signed JWT
client assertion. It reads these environment variables:

| Variable | Meaning |
| --- | --- |
| `NETSUITE_ACCOUNT_ID` | Account ID, used in the REST host name |
| `NETSUITE_CLIENT_ID` | Integration client ID |
| `NETSUITE_CLIENT_SECRET` | Integration client secret |
| `NETSUITE_CERTIFICATE_ID` | Certificate ID, sent as the JWT `kid` header |
| `NETSUITE_PRIVATE_KEY_PATH` | Path to the PEM-encoded RSA private key |
| `NETSUITE_PRIVATE_KEY_PASSWORD` | Password for the private key, if it has one |
| `NETSUITE_RECORD_TYPES` | Comma-separated list of record types |

`NETSUITE_RECORD_TYPES` is parsed into `Config.record_types` by
`netsuite_mcp.server.load_config`, but neither tool uses it.

## Running

```
netsuite-mcp
```

The command takes no options besides `--help`. It serves newline-delimited
JSON-RPC on standard input and output and answers `initialize`, `ping`,
`tools/list` and `tools/call`. Notifications get no reply. Register the
`netsuite-mcp` command as a stdio server in your MCP client. If the
configuration cannot be read or the private key cannot be loaded, it logs
the error to standard error and exits with status 1.

## Suggested workflow

1. Call `netsuite_get_metadata` with `record_type="customer"`.
2. Check the field names and types in the result.
3. Write a SuiteQL query using those field names, with a `LIMIT`.
4. Run it with `netsuite_run_suiteql`.

## Library use

```python
from netsuite_mcp.client import ClientOptions, NetSuiteClient

client = NetSuiteClient(ClientOptions(...))
rows = client.suiteql("SELECT id, companyname FROM customer", limit=10, offset=0)
print(rows.count, rows.has_more)

schema = client.metadata("customer")
print(schema.to_dict() if schema else None)
```

`NetSuiteClient` raises `NetSuiteError` when a request fails.
`build_client_assertion` returns the signed JWT on its own.

Schemas are `netsuite_mcp.schematree.Schema` objects. `Schema.from_dict`
reads decoded JSON and folds `nullable: true` into the type list.
`Schema.to_dict` writes it back. `Schema.base_type` gives the single
non-null type. `Schema.walk` visits every sub-schema reachable through
properties, array items and `oneOf`. `Schema.resolve_references` replaces
each `$ref` with what a `ReferenceResolver` returns. Malformed schemas raise
`SchemaError`.

## What it does not do

- It only reads. It has no tools that create, update or delete records.
- It speaks MCP over stdio only. There is no HTTP or SSE transport, and it
  offers no MCP resources or prompts.
- The signed client assertion is built once, when the client is created,
  and expires after one hour. Fetching a new access token after that needs
  a new client, which in practice means restarting the server.