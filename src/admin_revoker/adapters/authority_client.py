"""
HTTP adapters — registration and storage authority clients via httpx.

Adapter layer — implements RevocationAuthorityClient and
StorageAuthorityClient over two wire transports reaching the same services:

  rest     POST {ra}/admin/revoke-certificate
           GET  {sa}/registrations/{id}
           POST {sa}/authorizations/revoke-by-domain

  jsonrpc  JSON-RPC 2.0 POST to the service URL, methods
           AdministrativelyRevokeCertificate, GetRegistration,
           RevokeAuthorizationsByDomain

The transport is picked once when the clients are built; the orchestrator
only sees the ports. Each client owns one httpx.Client for the life of the
process, with the configured timeout and TLS material.

No call is retried; every failure is terminal for the operation. All errors
are captured into REMOTE_CALL_FAILURE results (or NOT_FOUND for an unknown registration).
"""

from __future__ import annotations

import base64
import itertools
import ssl
from typing import Any

import httpx
import structlog
from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding

from admin_revoker.domain.models import (
    AuthorizationRevocationCounts,
    DomainIdentifier,
    Registration,
)
from admin_revoker.domain.reasons import RevocationReason
from admin_revoker.railway import ErrorCode, Result

log = structlog.get_logger()


class AuthorityError(Exception):
    """Raised inside the adapters when an authority answers with an error status."""

    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"HTTP {status_code}: {detail}")


def tls_context(
    cert_file: str | None = None,
    key_file: str | None = None,
    ca_file: str | None = None,
) -> ssl.SSLContext | bool:
    """
    Build the SSL context shared by both authority clients.

    Returns True (httpx default verification) when no TLS material is configured.
    """
    if not (cert_file or ca_file):
        return True
    context = ssl.create_default_context(cafile=ca_file)
    if cert_file:
        context.load_cert_chain(certfile=cert_file, keyfile=key_file)
    return context


def build_http_client(timeout: float, verify: ssl.SSLContext | bool = True) -> httpx.Client:
    return httpx.Client(
        timeout=timeout,
        verify=verify,
        headers={"User-Agent": "admin-revoker"},
    )


def format_serial(certificate: x509.Certificate) -> str:
    """Serial as the zero-padded lowercase hex string used in the certificates table."""
    return f"{certificate.serial_number:036x}"


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        body = response.json()
        detail = body.get("detail") or body.get("message") or response.text
    except (ValueError, AttributeError):
        detail = response.text or response.reason_phrase
    raise AuthorityError(response.status_code, detail)


def _registration_from_json(body: dict[str, Any]) -> Registration:
    return Registration(
        id=int(body["id"]),
        status=body.get("status"),
        contact=tuple(body.get("contact") or ()),
    )


def _counts_from_json(body: dict[str, Any]) -> AuthorizationRevocationCounts:
    return AuthorizationRevocationCounts(valid=int(body["finalized"]), pending=int(body["pending"]))


def _revocation_params(
    certificate: x509.Certificate, reason: RevocationReason, admin_identity: str
) -> dict[str, Any]:
    return {
        "certificate": base64.b64encode(certificate.public_bytes(Encoding.DER)).decode("ascii"),
        "serial": format_serial(certificate),
        "reason": int(reason),
        "adminName": admin_identity,
    }


def _identifier_params(identifier: DomainIdentifier) -> dict[str, Any]:
    return {"identifier": {"type": identifier.kind.value, "value": identifier.value}}


# ─────────────────────── REST transport ───────────────────────


class RestRevocationAuthorityClient:
    """Administrative revocation against the RA's REST endpoint."""

    def __init__(self, url: str, client: httpx.Client) -> None:
        self._url = url.rstrip("/")
        self._client = client

    def revoke_certificate(
        self,
        certificate: x509.Certificate,
        reason: RevocationReason,
        admin_identity: str,
    ) -> Result[str]:
        serial = format_serial(certificate)
        return Result.from_computation(
            lambda: self._do_revoke(_revocation_params(certificate, reason, admin_identity)),
            ErrorCode.REMOTE_CALL_FAILURE,
            f"Registration authority failed to revoke certificate {serial}",
        )

    def _do_revoke(self, params: dict[str, Any]) -> str:
        response = self._client.post(f"{self._url}/admin/revoke-certificate", json=params)
        _raise_for_status(response)
        log.info("ra.certificate_revoked", serial=params["serial"], reason=params["reason"])
        return params["serial"]

    def close(self) -> None:
        self._client.close()


class RestStorageAuthorityClient:
    """Registration lookup and authorization invalidation against the SA's REST endpoints."""

    def __init__(self, url: str, client: httpx.Client) -> None:
        self._url = url.rstrip("/")
        self._client = client

    def get_registration(self, registration_id: int) -> Result[Registration]:
        try:
            response = self._client.get(f"{self._url}/registrations/{registration_id}")
        except httpx.HTTPError as e:
            return Result.failure(
                ErrorCode.REMOTE_CALL_FAILURE,
                f"Couldn't fetch registration {registration_id}: {e}",
                e,
            )
        if response.status_code == httpx.codes.NOT_FOUND:
            return Result.failure(
                ErrorCode.NOT_FOUND, f"registration {registration_id} not found"
            )
        return Result.from_computation(
            lambda: self._parse_registration(response),
            ErrorCode.REMOTE_CALL_FAILURE,
            f"Couldn't fetch registration {registration_id}",
        )

    def _parse_registration(self, response: httpx.Response) -> Registration:
        _raise_for_status(response)
        return _registration_from_json(response.json())

    def revoke_authorizations_by_domain(
        self, identifier: DomainIdentifier
    ) -> Result[AuthorizationRevocationCounts]:
        return Result.from_computation(
            lambda: self._do_revoke_authorizations(identifier),
            ErrorCode.REMOTE_CALL_FAILURE,
            f"Failed to revoke authorizations for {identifier.value}",
        )

    def _do_revoke_authorizations(
        self, identifier: DomainIdentifier
    ) -> AuthorizationRevocationCounts:
        response = self._client.post(
            f"{self._url}/authorizations/revoke-by-domain",
            json=_identifier_params(identifier),
        )
        _raise_for_status(response)
        counts = _counts_from_json(response.json())
        log.info(
            "sa.authorizations_revoked",
            domain=identifier.value,
            valid=counts.valid,
            pending=counts.pending,
        )
        return counts

    def close(self) -> None:
        self._client.close()


# ─────────────────────── JSON-RPC transport (legacy) ───────────────────────


class JsonRpcChannel:
    """
    One JSON-RPC 2.0 endpoint.

    `call` returns the whole response object on success. An `error` member
    whose `data.type` is "NotFound" becomes NOT_FOUND; anything else is a
    REMOTE_CALL_FAILURE.
    """

    def __init__(self, url: str, client: httpx.Client) -> None:
        self._url = url
        self._client = client
        self._ids = itertools.count(1)

    def call(self, method: str, params: dict[str, Any]) -> Result[dict[str, Any]]:
        request_id = next(self._ids)
        return Result.from_computation(
            lambda: self._post(method, params, request_id),
            ErrorCode.REMOTE_CALL_FAILURE,
            f"{method} call failed",
        ).flat_map(lambda body: self._check_error(method, body))

    def _post(self, method: str, params: dict[str, Any], request_id: int) -> dict[str, Any]:
        response = self._client.post(
            self._url,
            json={"jsonrpc": "2.0", "method": method, "params": params, "id": request_id},
        )
        _raise_for_status(response)
        body: dict[str, Any] = response.json()
        if body.get("id") != request_id:
            raise ValueError(f"response id {body.get('id')!r} does not match request id {request_id}")
        return body

    def _check_error(self, method: str, body: dict[str, Any]) -> Result[dict[str, Any]]:
        error = body.get("error")
        if error is None:
            return Result.success(body)
        data = error.get("data") or {}
        message = f"{method} failed: {error.get('message', 'unknown error')} (code {error.get('code')})"
        if data.get("type") == "NotFound":
            return Result.failure(ErrorCode.NOT_FOUND, message)
        return Result.failure(ErrorCode.REMOTE_CALL_FAILURE, message)

    def close(self) -> None:
        self._client.close()


class JsonRpcRevocationAuthorityClient:
    """Administrative revocation through the RA's legacy JSON-RPC endpoint."""

    def __init__(self, channel: JsonRpcChannel) -> None:
        self._channel = channel

    def revoke_certificate(
        self,
        certificate: x509.Certificate,
        reason: RevocationReason,
        admin_identity: str,
    ) -> Result[str]:
        params = _revocation_params(certificate, reason, admin_identity)
        return (
            self._channel.call("AdministrativelyRevokeCertificate", params)
            .map(lambda _: params["serial"])
            .peek(lambda serial: log.info("ra.certificate_revoked", serial=serial, reason=int(reason)))
        )

    def close(self) -> None:
        self._channel.close()


class JsonRpcStorageAuthorityClient:
    """Registration lookup and authorization invalidation through the SA's JSON-RPC endpoint."""

    def __init__(self, channel: JsonRpcChannel) -> None:
        self._channel = channel

    def get_registration(self, registration_id: int) -> Result[Registration]:
        return self._channel.call("GetRegistration", {"id": registration_id}).flat_map(
            lambda body: Result.from_computation(
                lambda: _registration_from_json(body["result"]),
                ErrorCode.REMOTE_CALL_FAILURE,
                f"Malformed GetRegistration response for {registration_id}",
            )
        )

    def revoke_authorizations_by_domain(
        self, identifier: DomainIdentifier
    ) -> Result[AuthorizationRevocationCounts]:
        return (
            self._channel.call("RevokeAuthorizationsByDomain", _identifier_params(identifier))
            .flat_map(
                lambda body: Result.from_computation(
                    lambda: _counts_from_json(body["result"]),
                    ErrorCode.REMOTE_CALL_FAILURE,
                    f"Malformed RevokeAuthorizationsByDomain response for {identifier.value}",
                )
            )
            .peek(
                lambda counts: log.info(
                    "sa.authorizations_revoked",
                    domain=identifier.value,
                    valid=counts.valid,
                    pending=counts.pending,
                )
            )
        )

    def close(self) -> None:
        self._channel.close()
