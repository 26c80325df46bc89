"""
Composition root — configures logging and wires concrete adapters.

This is the ONLY place where concrete adapter classes are instantiated.
The orchestrator and the CLI commands depend on the ports alone.

Responsibilities:
  1. Configure structlog (console or JSON lines, to stderr)
  2. Resolve the administrator identity recorded with each revocation
  3. Pick the authority transport (rest or jsonrpc) once, from settings
  4. Create the store, transaction context, decoder, clients and audit reporter
  5. Hand them to a RevocationOrchestrator
"""

from __future__ import annotations

import getpass
import logging
import sys
from collections.abc import Callable
from contextlib import ExitStack
from dataclasses import dataclass, field

import structlog

from admin_revoker.adapters.audit import StructlogAuditReporter
from admin_revoker.adapters.authority_client import (
    JsonRpcChannel,
    JsonRpcRevocationAuthorityClient,
    JsonRpcStorageAuthorityClient,
    RestRevocationAuthorityClient,
    RestStorageAuthorityClient,
    build_http_client,
    tls_context,
)
from admin_revoker.adapters.certificate_decoder import CryptographyCertificateDecoder
from admin_revoker.adapters.repository import PsycopgCertificateStore, PsycopgTransactionContext
from admin_revoker.config import AppSettings
from admin_revoker.domain.ports import (
    RevocationAuthorityClient,
    StorageAuthorityClient,
    TransactionContext,
)
from admin_revoker.railway import ErrorCode, Result
from admin_revoker.revoker import RevocationOrchestrator


def configure_structlog(log_level: str = "INFO", log_format: str = "console") -> None:
    """
    Configure structlog for the revoker.

    Everything goes to stderr so that command output (list-reasons) on
    stdout stays clean. `log_format="json"` emits one JSON object per line.
    """
    renderer: structlog.types.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


@dataclass
class Application:
    """Everything one command needs; close() releases the process-scoped connections."""

    orchestrator: RevocationOrchestrator
    transactions: TransactionContext
    admin_identity: str
    closers: list[Callable[[], None]] = field(default_factory=list)

    def close(self) -> None:
        """Run every closer in order; one raising does not skip the rest."""
        with ExitStack() as stack:
            for close in reversed(self.closers):
                stack.callback(close)


def resolve_admin_identity(settings: AppSettings) -> Result[str]:
    """The configured admin identity, else the name of the OS user running the tool."""
    if settings.admin_identity:
        return Result.success(settings.admin_identity)
    return Result.from_computation(
        getpass.getuser,
        ErrorCode.CONFIGURATION_ERROR,
        "Couldn't determine the administrator identity; set admin_identity",
    )


_AuthorityClients = tuple[
    RevocationAuthorityClient,
    StorageAuthorityClient,
    list[Callable[[], None]],
]


def _create_authority_clients(settings: AppSettings) -> _AuthorityClients:
    """Build both authority clients for the configured transport."""
    tls = settings.tls
    verify = tls_context(
        cert_file=str(tls.cert_file) if tls.cert_file else None,
        key_file=str(tls.key_file) if tls.key_file else None,
        ca_file=str(tls.ca_file) if tls.ca_file else None,
    )
    ra_http = build_http_client(settings.ra_service.timeout_seconds, verify)
    sa_http = build_http_client(settings.sa_service.timeout_seconds, verify)

    ra: RevocationAuthorityClient
    sa: StorageAuthorityClient
    if settings.transport == "jsonrpc":
        ra = JsonRpcRevocationAuthorityClient(JsonRpcChannel(settings.ra_service.url, ra_http))
        sa = JsonRpcStorageAuthorityClient(JsonRpcChannel(settings.sa_service.url, sa_http))
    else:
        ra = RestRevocationAuthorityClient(settings.ra_service.url, ra_http)
        sa = RestStorageAuthorityClient(settings.sa_service.url, sa_http)
    return ra, sa, [ra_http.close, sa_http.close]


def build_application(settings: AppSettings) -> Result[Application]:
    """Wire the orchestrator from settings, or fail with CONFIGURATION_ERROR."""
    return resolve_admin_identity(settings).flat_map(
        lambda admin: Result.from_computation(
            lambda: _assemble(settings, admin),
            ErrorCode.CONFIGURATION_ERROR,
            "Failed to set up revoker",
        )
    )


def _assemble(settings: AppSettings, admin_identity: str) -> Application:
    ra, sa, closers = _create_authority_clients(settings)
    transactions = PsycopgTransactionContext(
        dsn=settings.database.get_dsn(),
        connect_timeout=settings.database.connect_timeout_seconds,
    )
    orchestrator = RevocationOrchestrator(
        store=PsycopgCertificateStore(),
        decoder=CryptographyCertificateDecoder(),
        ra=ra,
        sa=sa,
        audit=StructlogAuditReporter(admin_identity),
    )
    structlog.get_logger().info(
        "app.configured",
        transport=settings.transport,
        ra=settings.ra_service.url,
        sa=settings.sa_service.url,
        admin=admin_identity,
    )
    return Application(
        orchestrator=orchestrator,
        transactions=transactions,
        admin_identity=admin_identity,
        closers=[*closers, transactions.close],
    )
