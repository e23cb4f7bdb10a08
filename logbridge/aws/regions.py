# logbridge/aws/regions.py

import json
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Any, List


@dataclass(frozen=True)
class AWSRegion:
    """Region code paired with its human readable location"""
    value: str
    label: str

    @property
    def display_value(self) -> str:
        return f"{self.label}: {self.value}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'value': self.value,
            'label': self.label,
            'display_value': self.display_value
        }


# Static, ordered region set. Partition-global pseudo regions are not listed.
AWS_REGIONS = OrderedDict([
    ('us-east-1', 'US East (N. Virginia)'),
    ('us-east-2', 'US East (Ohio)'),
    ('us-west-1', 'US West (N. California)'),
    ('us-west-2', 'US West (Oregon)'),
    ('af-south-1', 'Africa (Cape Town)'),
    ('ap-east-1', 'Asia Pacific (Hong Kong)'),
    ('ap-south-1', 'Asia Pacific (Mumbai)'),
    ('ap-south-2', 'Asia Pacific (Hyderabad)'),
    ('ap-southeast-1', 'Asia Pacific (Singapore)'),
    ('ap-southeast-2', 'Asia Pacific (Sydney)'),
    ('ap-southeast-3', 'Asia Pacific (Jakarta)'),
    ('ap-southeast-4', 'Asia Pacific (Melbourne)'),
    ('ap-northeast-1', 'Asia Pacific (Tokyo)'),
    ('ap-northeast-2', 'Asia Pacific (Seoul)'),
    ('ap-northeast-3', 'Asia Pacific (Osaka)'),
    ('ca-central-1', 'Canada (Central)'),
    ('ca-west-1', 'Canada West (Calgary)'),
    ('eu-central-1', 'Europe (Frankfurt)'),
    ('eu-central-2', 'Europe (Zurich)'),
    ('eu-west-1', 'Europe (Ireland)'),
    ('eu-west-2', 'Europe (London)'),
    ('eu-west-3', 'Europe (Paris)'),
    ('eu-south-1', 'Europe (Milan)'),
    ('eu-south-2', 'Europe (Spain)'),
    ('eu-north-1', 'Europe (Stockholm)'),
    ('il-central-1', 'Israel (Tel Aviv)'),
    ('me-south-1', 'Middle East (Bahrain)'),
    ('me-central-1', 'Middle East (UAE)'),
    ('sa-east-1', 'South America (Sao Paulo)'),
    ('us-gov-east-1', 'AWS GovCloud (US-East)'),
    ('us-gov-west-1', 'AWS GovCloud (US-West)'),
])


def is_valid_region(region: str) -> bool:
    return region in AWS_REGIONS


def list_regions() -> List[AWSRegion]:
    return [AWSRegion(value=code, label=label) for code, label in AWS_REGIONS.items()]


# Minimal IAM policy needed to set up and run a Kinesis/CloudWatch input
KINESIS_POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Sid": "VisualEditor0",
            "Effect": "Allow",
            "Action": [
                "cloudwatch:PutMetricData",
                "dynamodb:CreateTable",
                "dynamodb:DescribeTable",
                "dynamodb:GetItem",
                "dynamodb:PutItem",
                "dynamodb:Scan",
                "dynamodb:UpdateItem",
                "ec2:DescribeInstances",
                "ec2:DescribeNetworkInterfaceAttribute",
                "ec2:DescribeNetworkInterfaces",
                "elasticloadbalancing:DescribeLoadBalancerAttributes",
                "elasticloadbalancing:DescribeLoadBalancers",
                "iam:CreateRole",
                "iam:GetRole",
                "iam:PassRole",
                "iam:PutRolePolicy",
                "kinesis:CreateStream",
                "kinesis:DescribeStream",
                "kinesis:GetRecords",
                "kinesis:GetShardIterator",
                "kinesis:ListShards",
                "kinesis:ListStreams",
                "logs:DescribeLogGroups",
                "logs:PutSubscriptionFilter"
            ],
            "Resource": "*"
        }
    ]
}

CLOUDWATCH_POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Action": [
                "logs:DescribeLogGroups",
                "logs:DescribeLogStreams",
                "logs:GetLogEvents",
                "logs:PutSubscriptionFilter"
            ],
            "Resource": "*"
        }
    ]
}

AVAILABLE_SERVICES = [
    {
        'name': 'CloudWatch',
        'description': 'Retrieve CloudWatch logs via Kinesis. The Kinesis stream is subscribed '
                       'to the CloudWatch log group.',
        'policy': json.dumps(CLOUDWATCH_POLICY),
        'helper_text': 'Requires Kinesis',
        'learn_more_link': 'https://docs.aws.amazon.com/AmazonCloudWatch/latest/logs/Subscriptions.html'
    },
    {
        'name': 'Kinesis',
        'description': 'Read log messages directly from a Kinesis stream.',
        'policy': json.dumps(KINESIS_POLICY),
        'helper_text': 'Requires stream and read permissions for Kinesis',
        'learn_more_link': 'https://docs.aws.amazon.com/streams/latest/dev/introduction.html'
    }
]
