from .aws_service import AWSService
from .client import AWSClientFactory, translate_aws_errors
from .cloudwatch_service import CloudWatchService
from .kinesis_service import KinesisService

__all__ = ['AWSService', 'AWSClientFactory', 'CloudWatchService', 'KinesisService', 'translate_aws_errors']
