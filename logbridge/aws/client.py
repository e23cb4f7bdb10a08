# logbridge/aws/client.py

"""
Per-call boto3 client construction and botocore error translation.

Clients are built from the credentials of a single request and are never
cached, so no credential outlives the call that supplied it. Botocore's
own retry handling is disabled; callers decide whether to retry.
"""

import logging
from contextlib import contextmanager
from typing import Optional

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoRegionError,
    ReadTimeoutError,
)

from logbridge.aws.models import AWSRequest
from logbridge.errors import (
    AuthenticationError,
    OperationTimeoutError,
    RegionUnavailableError,
    RemoteServiceError,
    StreamNotFoundError,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIAL_CODES = {
    'UnrecognizedClientException',
    'InvalidClientTokenId',
    'InvalidAccessKeyId',
    'InvalidSignatureException',
    'SignatureDoesNotMatch',
    'IncompleteSignature',
    'ExpiredTokenException',
    'MissingAuthenticationToken',
}

ACCESS_DENIED_CODES = {
    'AccessDenied',
    'AccessDeniedException',
    'UnauthorizedOperation',
}


class AWSClientFactory:
    """Builds one boto3 client per gateway call"""

    def __init__(self, connect_timeout: float = 5, read_timeout: float = 10,
                 endpoint_url: Optional[str] = None):
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.endpoint_url = endpoint_url

    def _client_config(self, region: str) -> BotoConfig:
        return BotoConfig(
            region_name=region,
            connect_timeout=self.connect_timeout,
            read_timeout=self.read_timeout,
            retries={
                'total_max_attempts': 1,
                'mode': 'standard'
            }
        )

    def _session(self, request: AWSRequest) -> boto3.Session:
        session = boto3.Session(
            aws_access_key_id=request.aws_access_key_id,
            aws_secret_access_key=request.aws_secret_access_key,
            region_name=request.region
        )
        if not request.assume_role_arn:
            return session

        logger.debug(f"Assuming role {request.assume_role_arn} in {request.region}")
        sts = session.client('sts', config=self._client_config(request.region),
                             endpoint_url=self.endpoint_url)
        credentials = sts.assume_role(
            RoleArn=request.assume_role_arn,
            RoleSessionName='logbridge-integration'
        )['Credentials']
        return boto3.Session(
            aws_access_key_id=credentials['AccessKeyId'],
            aws_secret_access_key=credentials['SecretAccessKey'],
            aws_session_token=credentials['SessionToken'],
            region_name=request.region
        )

    def client(self, service_name: str, request: AWSRequest):
        """Create a client for ``service_name`` scoped to the request's credentials"""
        session = self._session(request)
        return session.client(
            service_name,
            config=self._client_config(request.region),
            endpoint_url=self.endpoint_url
        )


@contextmanager
def translate_aws_errors(operation: str, region: str, stream_name: Optional[str] = None):
    """
    Map botocore failures raised inside the block onto the gateway taxonomy.

    Args:
        operation: Name used in log lines and messages
        region: Region the call targeted
        stream_name: Set when a missing resource means a missing stream
    """
    try:
        yield
    except (ConnectTimeoutError, ReadTimeoutError) as e:
        logger.warning(f"{operation} timed out in {region}: {str(e)}")
        raise OperationTimeoutError(f"{operation} timed out: {str(e)}") from e
    except (EndpointConnectionError, NoRegionError) as e:
        logger.warning(f"{operation} could not reach region {region}: {str(e)}")
        raise RegionUnavailableError(f"Region {region} is unavailable: {str(e)}") from e
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', '')
        logger.warning(f"{operation} failed in {region} with {error_code}")
        if error_code in INVALID_CREDENTIAL_CODES:
            raise AuthenticationError(
                "The supplied AWS credentials are invalid") from e
        if error_code in ACCESS_DENIED_CODES:
            raise AuthenticationError(
                f"The supplied AWS credentials are not permitted to perform {operation}",
                status_code=403) from e
        if error_code == 'ResourceNotFoundException' and stream_name:
            raise StreamNotFoundError(
                f"Stream [{stream_name}] was not found in region {region}") from e
        raise RemoteServiceError(f"{operation} failed: {str(e)}") from e
    except BotoCoreError as e:
        logger.warning(f"{operation} failed in {region}: {str(e)}")
        raise RemoteServiceError(f"{operation} failed: {str(e)}") from e
