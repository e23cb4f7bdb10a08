# logbridge/inputs/aws.py

from typing import List

from logbridge.inputs.base import ConfigurationField, InputDescriptor

NAME = "AWS Kinesis/CloudWatch"
TYPE = "logbridge.inputs.aws.AWSInput"


class AWSInput:
    """
    Descriptor for inputs created through the AWS endpoints.

    Stream consumption is carried out by the host; only the descriptor and
    requested configuration are provided here.
    """

    NAME = NAME
    TYPE = TYPE
    descriptor = InputDescriptor(name=NAME, exclusive=False, link='https://aws.amazon.com/kinesis/')

    @classmethod
    def get_config(cls) -> List[ConfigurationField]:
        return [
            ConfigurationField('aws_input_type', 'AWS Input Type', required=True),
            ConfigurationField('region', 'AWS Region', 'us-east-1', required=True),
            ConfigurationField('stream_name', 'Kinesis Stream Name', required=True),
            ConfigurationField('batch_size', 'Kinesis Record batch size', 10000,
                               'Maximum number of records read per Kinesis request'),
            ConfigurationField('assume_role_arn', 'AWS Assume Role ARN'),
            ConfigurationField('enable_throttling', 'Enable throttling', False,
                               'Pause reading when the processing pipeline is backed up'),
            ConfigurationField('aws_access_key_id', 'AWS Access Key', required=True),
            ConfigurationField('aws_secret_access_key', 'AWS Secret Key', required=True),
        ]

    @classmethod
    def get_descriptor(cls) -> InputDescriptor:
        return cls.descriptor
