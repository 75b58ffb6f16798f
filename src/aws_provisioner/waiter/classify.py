"""Classify exceptions raised by AWS SDK calls.

The predicates here inspect what an exception *carries* (a botocore-style
``response`` dict, an HTTP status, a ``not_found``/``retryable`` flag) rather
than its class hierarchy, because botocore generates modeled exception classes
per client at runtime.
"""

from __future__ import annotations

from typing import Any

from botocore.exceptions import (
    BotoCoreError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

NOT_FOUND_CODES: frozenset[str] = frozenset(
    {
        "EntityNotFound",
        "NoSuchVpcOrigin",
        "NoSuchResource",
        "ResourceNotFoundException",
        "NotFoundException",
        "ApplicationDoesNotExistException",
        "DeploymentConfigDoesNotExistException",
        "DeploymentGroupDoesNotExistException",
    }
)

THROTTLING_CODES: frozenset[str] = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "RequestThrottledException",
        "TooManyRequestsException",
        "RequestLimitExceeded",
        "SlowDown",
        "PriorRequestNotComplete",
        "ServiceUnavailable",
        "InternalError",
        "InternalFailure",
    }
)

_NETWORK_ERRORS: tuple[type[BaseException], ...] = (
    EndpointConnectionError,
    ConnectionClosedError,
    ConnectTimeoutError,
    ReadTimeoutError,
    ConnectionError,
    TimeoutError,
)


def _error_info(exc: BaseException) -> tuple[str | None, int | None]:
    """Return ``(error_code, http_status)`` from a botocore-style exception."""
    response: Any = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return None, None
    code = response.get("Error", {}).get("Code")
    status = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code, status


def error_code(exc: BaseException) -> str | None:
    """The AWS error code carried by *exc*, if any."""
    return _error_info(exc)[0]


def is_not_found(exc: BaseException | None) -> bool:
    """True if *exc* means the addressed entity does not exist."""
    if exc is None:
        return False
    flag = getattr(exc, "not_found", None)
    if isinstance(flag, bool):
        return flag
    code, _ = _error_info(exc)
    return code in NOT_FOUND_CODES


def is_retryable(exc: BaseException) -> bool:
    """True if a status read that raised *exc* may succeed when repeated.

    Throttling, server-side (5xx) and connection failures are retryable.
    Any other service error (4xx: access denied, validation, bad request) is
    permanent, and so are botocore's client-side failures (missing credentials
    or region, parameter validation). Other exceptions that carry no service
    response are assumed to be transient unless they declare
    ``retryable = False``.
    """
    flag = getattr(exc, "retryable", None)
    if isinstance(flag, bool):
        return flag
    if isinstance(exc, _NETWORK_ERRORS):
        return True
    if isinstance(exc, BotoCoreError):
        return False

    code, status = _error_info(exc)
    if code is None and status is None:
        return not isinstance(exc, (TypeError, ValueError, KeyError, AttributeError))
    if code in THROTTLING_CODES:
        return True
    if status is not None:
        return status >= 500 or status == 429
    return False
