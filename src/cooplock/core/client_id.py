"""Client identity of the process driving an operation."""

import socket
import time

from ..errors import ClientIdError

CLIENT_ID_SUFFIX_DIGITS = 6


def new_client_id(operation_id: str) -> str:
    """Generate a fresh client id: host name plus a time-derived suffix.

    The id is a liveness marker, regenerated on every acquire and reacquire;
    `operation_id` stays the stable owner key.

    Raises:
        ClientIdError: If the local host name cannot be resolved
    """
    try:
        host = socket.getfqdn(socket.gethostname())
    except OSError as e:
        raise ClientIdError(f"Failed to get clientId for {operation_id} operation") from e
    if not host:
        raise ClientIdError(f"Failed to get clientId for {operation_id} operation: empty host name")
    epoch_millis = str(time.time_ns() // 1_000_000)
    return f"{host}-{epoch_millis[-CLIENT_ID_SUFFIX_DIGITS:]}"
