# logbridge/aws/cloudwatch_service.py

import logging
from typing import List

from logbridge.aws.client import AWSClientFactory, translate_aws_errors
from logbridge.aws.models import AWSRequest, LogGroupsResponse

logger = logging.getLogger(__name__)


class CloudWatchService:
    """CloudWatch Logs discovery"""

    def __init__(self, client_factory: AWSClientFactory):
        self.client_factory = client_factory

    def get_log_group_names(self, region: str, access_key_id: str,
                            secret_access_key: str) -> LogGroupsResponse:
        """
        List every CloudWatch log group name in the region.

        Raises:
            ValidationError: Missing credentials or unknown region
            AuthenticationError, RegionUnavailableError,
            OperationTimeoutError, RemoteServiceError: Remote failures
        """
        request = AWSRequest(region=region, aws_access_key_id=access_key_id,
                             aws_secret_access_key=secret_access_key)
        request.ensure_valid()

        log_group_names: List[str] = []
        with translate_aws_errors('DescribeLogGroups', region):
            client = self.client_factory.client('logs', request)
            paginator = client.get_paginator('describe_log_groups')
            for page in paginator.paginate():
                for log_group in page.get('logGroups', []):
                    log_group_names.append(log_group['logGroupName'])

        logger.info(f"Found {len(log_group_names)} log groups in {region}")
        return LogGroupsResponse(log_groups=log_group_names)
