"""REST client for the NetSuite SuiteTalk API, authenticated with OAuth 2.0 M2M."""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import quote, quote_plus

import jwt
import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .schematree import Schema, SchemaError, prepare_dummy_schema

TOKEN_ENDPOINT = "/auth/oauth2/v1/token"
CLIENT_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
ASSERTION_LIFETIME = timedelta(hours=1)
_TOKEN_EXPIRY_MARGIN = 10.0
_SCHEMALESS_FIELD_TYPES = ("string", "null")


class NetSuiteError(RuntimeError):
    """Raised when talking to NetSuite fails."""


@dataclass
class ClientOptions:
    """Credentials and account settings for a NetSuite client."""

    account_id: str = ""
    client_id: str = ""
    client_secret: str = ""
    certificate_id: str = ""
    private_key_bytes: bytes = b""
    private_key_password: str = ""


@dataclass
class SuiteQLResponse:
    """One page of SuiteQL query results."""

    count: int = 0
    offset: int = 0
    total_results: int = 0
    has_more: bool = False
    items: list[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SuiteQLResponse:
        """Build a response from the decoded JSON body."""
        if not isinstance(data, Mapping):
            raise NetSuiteError("failed to unmarshal JSON: response must be an object")
        items = data.get("items") or []
        if not isinstance(items, list):
            raise NetSuiteError('failed to unmarshal JSON: "items" must be an array')
        try:
            return cls(
                count=int(data.get("count") or 0),
                offset=int(data.get("offset") or 0),
                total_results=int(data.get("totalResults") or 0),
                has_more=bool(data.get("hasMore", False)),
                items=list(items),
            )
        except (TypeError, ValueError) as exc:
            raise NetSuiteError(f"failed to unmarshal JSON: {exc}") from exc


def _load_rsa_key(options: ClientOptions) -> rsa.RSAPrivateKey:
    password = options.private_key_password.encode() or None
    try:
        key = serialization.load_pem_private_key(options.private_key_bytes, password=password)
    except (ValueError, TypeError) as exc:
        raise NetSuiteError(f"failed to parse private key: {exc}") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise NetSuiteError("failed to parse private key: key is not a valid RSA private key")
    return key


def build_client_assertion(options: ClientOptions, now: Optional[datetime] = None) -> str:
    """Return the PS256-signed JWT that authenticates the client to the token endpoint."""
    key = _load_rsa_key(options)
    issued = now if now is not None else datetime.now(timezone.utc)
    claims = {
        "iss": options.client_id,
        "scope": ["rest_webservices"],
        "aud": TOKEN_ENDPOINT,
        "iat": int(issued.timestamp()),
        "exp": int((issued + ASSERTION_LIFETIME).timestamp()),
    }
    try:
        return jwt.encode(
            claims, key, algorithm="PS256", headers={"kid": options.certificate_id}
        )
    except Exception as exc:
        raise NetSuiteError(f"failed to get signed token: {exc}") from exc


class NetSuiteClient:
    """Client for the NetSuite REST web services of one account."""

    def __init__(
        self, options: ClientOptions, session: Optional[requests.Session] = None
    ) -> None:
        self._options = options
        self._session = session if session is not None else requests.Session()
        self._assertion = build_client_assertion(options)
        self._token: Optional[str] = None
        self._token_expiry: Optional[float] = None
        self._metadata_cache: dict[str, Schema] = {}

    @property
    def base_url(self) -> str:
        """Root URL of the account's REST services."""
        return f"https://{self._options.account_id}.suitetalk.api.netsuite.com/services/rest"

    def access_token(self) -> str:
        """Return a valid access token, fetching a new one when needed."""
        if self._token is not None and (
            self._token_expiry is None or time.time() < self._token_expiry
        ):
            return self._token

        form = {
            "grant_type": "client_credentials",
            "client_assertion_type": CLIENT_ASSERTION_TYPE,
            "client_assertion": self._assertion,
        }
        auth = None
        if self._options.client_id:
            auth = requests.auth.HTTPBasicAuth(
                quote_plus(self._options.client_id),
                quote_plus(self._options.client_secret),
            )
        try:
            response = self._session.post(
                self.base_url + TOKEN_ENDPOINT, data=form, auth=auth
            )
        except requests.RequestException as exc:
            raise NetSuiteError(f"oauth2: cannot fetch token: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise NetSuiteError(
                f"oauth2: cannot fetch token: {response.status_code}\n"
                f"Response: {response.text}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise NetSuiteError(f"oauth2: cannot parse token response: {exc}") from exc

        token = payload.get("access_token") if isinstance(payload, Mapping) else None
        if not token:
            raise NetSuiteError("oauth2: server response missing access_token")

        expires_in = payload.get("expires_in")
        try:
            seconds = float(expires_in) if expires_in is not None else 0.0
        except (TypeError, ValueError):
            seconds = 0.0
        self._token = str(token)
        self._token_expiry = (
            time.time() + seconds - _TOKEN_EXPIRY_MARGIN if seconds > 0 else None
        )
        return self._token

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        headers = dict(kwargs.pop("headers", {}) or {})
        headers["Authorization"] = f"Bearer {self.access_token()}"
        return self._session.request(method, self.base_url + path, headers=headers, **kwargs)

    def metadata(
        self, record_type: str, included_fields: Optional[Iterable[str]] = None
    ) -> Optional[Schema]:
        """Return the schema of ``record_type``, caching every schema seen."""
        cached = self._metadata_cache.get(record_type)
        if cached is not None:
            return cached

        try:
            schemas = self._catalog_schemas(record_type)
        except NetSuiteError:
            schemas = {}
        if record_type not in schemas:
            schemas = self._schemaless_schemas(record_type, included_fields or ())

        self._metadata_cache.update(schemas)
        return self._metadata_cache.get(record_type)

    def _catalog_schemas(self, record_type: str) -> dict[str, Schema]:
        path = "/record/v1/metadata-catalog/" + quote(record_type, safe="$&+,:;=@")
        try:
            response = self._request(
                "GET", path, headers={"Accept": "application/swagger+json"}
            )
        except requests.RequestException as exc:
            raise NetSuiteError(
                f"failed to GET /record/v1/metadata-catalog: {exc}"
            ) from exc
        try:
            body = response.json()
        except ValueError as exc:
            raise NetSuiteError(f"failed to unmarshal JSON: {exc}") from exc

        components = body.get("components") if isinstance(body, Mapping) else None
        raw_schemas = components.get("schemas") if isinstance(components, Mapping) else None
        if not isinstance(raw_schemas, Mapping):
            return {}
        try:
            return {name: Schema.from_dict(raw) for name, raw in raw_schemas.items()}
        except SchemaError as exc:
            raise NetSuiteError(str(exc)) from exc

    def _schemaless_schemas(
        self, record_type: str, included_fields: Iterable[str]
    ) -> dict[str, Schema]:
        row = self.suiteql(f"SELECT * FROM {record_type}", 1, 0)
        if not row.items:
            raise NetSuiteError(f"no rows returned for record type '{record_type}'")
        first = row.items[0]
        columns = first if isinstance(first, Mapping) else {}

        properties = {
            name: prepare_dummy_schema(_SCHEMALESS_FIELD_TYPES) for name in included_fields
        }
        properties.update(
            (name, prepare_dummy_schema(_SCHEMALESS_FIELD_TYPES)) for name in columns
        )

        schema = prepare_dummy_schema(["object"])
        schema.properties = properties
        return {record_type: schema}

    def suiteql(self, query: str, limit: int = 0, offset: int = 0) -> SuiteQLResponse:
        """Run a SuiteQL query and return one page of results."""
        params: dict[str, str] = {}
        if limit != 0:
            params["limit"] = str(limit)
        if offset != 0:
            params["offset"] = str(offset)

        try:
            response = self._request(
                "POST",
                "/query/v1/suiteql",
                params=params,
                json={"q": query},
                headers={"Prefer": "transient"},
            )
        except requests.RequestException as exc:
            raise NetSuiteError(f"failed to get list of records: {exc}") from exc

        if response.status_code != 200:
            raise NetSuiteError(
                f"invalid HTTP response status {response.status_code}: {response.text}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise NetSuiteError(f"failed to unmarshal JSON: {exc}") from exc
        return SuiteQLResponse.from_dict(body)