"""Translation of botocore exceptions into provider exceptions."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    CredentialRetrievalError,
    EndpointConnectionError,
    NoCredentialsError,
    NoRegionError,
    PartialCredentialsError,
    ProxyConnectionError,
    ReadTimeoutError,
    SSLError,
)

from ec2ctl.providers.exceptions import (
    ProviderAPIError,
    ProviderConnectionError,
    ProviderCredentialsError,
    ProviderError,
)

logger = logging.getLogger(__name__)


def client_error_code(error: ClientError) -> str:
    """Return the AWS error code carried by a ClientError."""
    return error.response.get("Error", {}).get("Code", "")


@contextmanager
def handle_aws_errors() -> Iterator[None]:
    """Convert botocore exceptions raised in the block to provider exceptions.

    Yields
    ------
    None
        Control to the wrapped block

    Raises
    ------
    ProviderCredentialsError
        If credentials are missing or incomplete
    ProviderConnectionError
        If the regional endpoint cannot be reached
    ProviderAPIError
        If the API call returned an error response
    ProviderError
        If botocore failed in any other way
    """
    try:
        yield
    except (NoCredentialsError, PartialCredentialsError, CredentialRetrievalError) as e:
        raise ProviderCredentialsError(str(e)) from e
    except NoRegionError as e:
        raise ProviderCredentialsError(str(e)) from e
    except (
        EndpointConnectionError,
        ConnectionClosedError,
        ConnectTimeoutError,
        ProxyConnectionError,
        ReadTimeoutError,
        SSLError,
    ) as e:
        raise ProviderConnectionError(str(e)) from e
    except ClientError as e:
        error_code = client_error_code(e)
        operation = getattr(e, "operation_name", None)
        logger.debug("AWS call %s failed with %s", operation, error_code)
        raise ProviderAPIError(str(e), error_code=error_code, operation=operation) from e
    except BotoCoreError as e:
        raise ProviderError(str(e)) from e
