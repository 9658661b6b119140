"""
src/tools/errors.py - fault taxonomy and per-request error state

The gateway raises `GatewayError` with an `ErrorKind`; the facade turns that
kind into a remediation hint and records it on an `ErrorState`. Every facade
instance owns its own `ErrorState`, so one request never sees another
request's fault.
"""


from __future__ import annotations
from enum import Enum
from typing import Optional

from sqlalchemy.exc import DisconnectionError, OperationalError, TimeoutError as PoolTimeoutError


class ErrorKind(str, Enum):

    IDENTITY = "identity"
    AUTHENTICATION = "authentication"
    CONNECTIVITY = "connectivity"
    DATA = "data"


class Outcome(str, Enum):

    OK = "ok"
    DEGRADED = "degraded"


# Checked in order; first hit wins
_MARKERS = (
    (ErrorKind.IDENTITY, ("managed identity", "azure_client_id", "managedidentitycredential")),
    (ErrorKind.AUTHENTICATION, ("login failed", "authentication")),
    (ErrorKind.CONNECTIVITY, ("network", "connection", "timeout")),
)

_CONNECTIVITY_TYPES = (OperationalError, DisconnectionError, PoolTimeoutError, ConnectionError, TimeoutError)


def classify_fault(exc: BaseException) -> ErrorKind:
    """
    Decide which `ErrorKind` an exception belongs to.

    Message markers take precedence (a login failure surfaces as an
    OperationalError too); the exception type is the tie-breaker.
    """

    if isinstance(exc, GatewayError):
        return exc.kind

    text = str(getattr(exc, "orig", None) or exc).lower()

    for kind, markers in _MARKERS:
        if any(m in text for m in markers):
            return kind

    if isinstance(exc, _CONNECTIVITY_TYPES):
        return ErrorKind.CONNECTIVITY

    return ErrorKind.DATA

def describe_fault(kind: ErrorKind, detail: str) -> str:
    """Build the user-facing message, with a FIX hint, for a classified fault."""

    if kind is ErrorKind.IDENTITY:
        return (
            f"Managed Identity Error: {detail}. "
            "FIX: Ensure the AZURE_CLIENT_ID environment variable is set to the Client ID of the "
            "user-assigned managed identity, and that the identity has been granted "
            "db_datareader and db_datawriter roles on the database."
        )
    if kind is ErrorKind.AUTHENTICATION:
        return (
            f"Database Authentication Error: {detail}. "
            "FIX: Verify the connection string uses 'Authentication=ActiveDirectoryMsi' "
            "and the managed identity has been added as a database user with proper permissions."
        )
    if kind is ErrorKind.CONNECTIVITY:
        return (
            f"Database Connection Error: {detail}. "
            "FIX: Check that the SQL Server firewall allows connections from this host "
            "and the server name in DATABASE_URL is correct."
        )

    return f"Database Error: {detail}"


class GatewayError(Exception):
    """A stored-procedure call failed. `kind` says how."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.DATA, procedure: Optional[str] = None):

        super().__init__(message)
        self.kind = kind
        self.procedure = procedure

    @classmethod
    def from_exception(cls, exc: BaseException, procedure: Optional[str] = None) -> "GatewayError":

        # DBAPIError text drags the whole SQL statement along; keep the driver message
        orig = getattr(exc, "orig", None)
        message = str(orig) if orig is not None else str(exc)

        return cls(message, kind=classify_fault(exc), procedure=procedure)


class ErrorState:
    """The last fault seen by one facade: a (message, location) pair or nothing."""

    def __init__(self):

        self.message: Optional[str] = None
        self.location: Optional[str] = None
        self.kind: Optional[ErrorKind] = None

    @property
    def has_error(self) -> bool:

        return bool(self.message)

    @property
    def outcome(self) -> Outcome:

        return Outcome.DEGRADED if self.has_error else Outcome.OK

    def set_error(self, message: str, location: str, kind: Optional[ErrorKind] = None) -> None:

        self.message = message
        self.location = location
        self.kind = kind

    def clear(self) -> None:

        self.message = None
        self.location = None
        self.kind = None
