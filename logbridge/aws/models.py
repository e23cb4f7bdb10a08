# logbridge/aws/models.py

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Tuple

from logbridge.aws.regions import AWSRegion, is_valid_region
from logbridge.errors import ValidationError

REDACTED = '********'


class AWSMessageType:
    """Input types a Kinesis stream can be consumed as"""
    KINESIS_CLOUDWATCH_FLOW_LOGS = "KINESIS_CLOUDWATCH_FLOW_LOGS"
    KINESIS_CLOUDWATCH_RAW = "KINESIS_CLOUDWATCH_RAW"
    KINESIS_RAW = "KINESIS_RAW"

    LABELS = {
        KINESIS_CLOUDWATCH_FLOW_LOGS: "Flow Log",
        KINESIS_CLOUDWATCH_RAW: "CloudWatch Raw",
        KINESIS_RAW: "Kinesis Raw",
    }

    @classmethod
    def is_valid(cls, value: Any) -> bool:
        return value in cls.LABELS


def _require_dict(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _string(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f"Field {key} must be a string", field=key)
    return value


def _boolean(data: Dict[str, Any], key: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise ValidationError(f"Field {key} must be a boolean", field=key)
    return value


@dataclass(frozen=True)
class AWSRequest:
    """Region and credentials for a single call. Never persisted."""
    region: str
    aws_access_key_id: str
    aws_secret_access_key: str = field(repr=False)
    assume_role_arn: Optional[str] = None

    REQUIRED_FIELDS = ('region', 'aws_access_key_id', 'aws_secret_access_key')

    @classmethod
    def from_dict(cls, data: Any) -> 'AWSRequest':
        data = _require_dict(data)
        return cls(**cls._credential_fields(data))

    @staticmethod
    def _credential_fields(data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'region': _string(data, 'region'),
            'aws_access_key_id': _string(data, 'aws_access_key_id'),
            'aws_secret_access_key': _string(data, 'aws_secret_access_key'),
            'assume_role_arn': _string(data, 'assume_role_arn') or None
        }

    def validate(self) -> Tuple[bool, Optional[str]]:
        """Validate credential fields"""
        for name in self.REQUIRED_FIELDS:
            if not getattr(self, name):
                return False, f"Missing required field: {name}"

        if not is_valid_region(self.region):
            return False, f"Invalid region: {self.region}"

        return True, None

    def ensure_valid(self) -> None:
        is_valid, error = self.validate()
        if not is_valid:
            raise ValidationError(error)


@dataclass(frozen=True)
class KinesisHealthCheckRequest(AWSRequest):
    stream_name: str = ''

    @classmethod
    def from_dict(cls, data: Any) -> 'KinesisHealthCheckRequest':
        data = _require_dict(data)
        return cls(stream_name=_string(data, 'stream_name'), **cls._credential_fields(data))

    def validate(self) -> Tuple[bool, Optional[str]]:
        is_valid, error = super().validate()
        if not is_valid:
            return is_valid, error
        if not self.stream_name:
            return False, "Missing required field: stream_name"
        return True, None


@dataclass(frozen=True)
class AWSInputCreateRequest(AWSRequest):
    name: str = ''
    description: str = ''
    aws_input_type: str = ''
    stream_name: str = ''
    batch_size: Any = None
    global_input: bool = False
    enable_throttling: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> 'AWSInputCreateRequest':
        data = _require_dict(data)
        return cls(
            name=_string(data, 'name'),
            description=_string(data, 'description'),
            aws_input_type=_string(data, 'aws_input_type'),
            stream_name=_string(data, 'stream_name'),
            batch_size=data.get('batch_size'),
            global_input=_boolean(data, 'global'),
            enable_throttling=_boolean(data, 'enable_throttling'),
            **cls._credential_fields(data)
        )

    def validate(self) -> Tuple[bool, Optional[str]]:
        is_valid, error = super().validate()
        if not is_valid:
            return is_valid, error

        for name in ('name', 'stream_name'):
            if not getattr(self, name):
                return False, f"Missing required field: {name}"

        if not AWSMessageType.is_valid(self.aws_input_type):
            return False, f"Invalid aws_input_type: {self.aws_input_type}"

        # bool is an int subclass, reject it explicitly
        if isinstance(self.batch_size, bool) or not isinstance(self.batch_size, int):
            return False, "batch_size must be an integer"
        if self.batch_size <= 0:
            return False, "batch_size must be positive"

        return True, None

    def to_configuration(self) -> Dict[str, Any]:
        """Configuration stored with the input. The secret stays out of summaries."""
        return {
            'aws_input_type': self.aws_input_type,
            'region': self.region,
            'stream_name': self.stream_name,
            'batch_size': self.batch_size,
            'assume_role_arn': self.assume_role_arn,
            'enable_throttling': self.enable_throttling,
            'aws_access_key_id': self.aws_access_key_id,
            'aws_secret_access_key': self.aws_secret_access_key
        }


@dataclass
class RegionsResponse:
    regions: List[AWSRegion]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'regions': [region.to_dict() for region in self.regions],
            'total': len(self.regions)
        }


@dataclass
class AvailableServiceResponse:
    services: List[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {'services': list(self.services), 'total': len(self.services)}


@dataclass
class LogGroupsResponse:
    log_groups: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {'log_groups': list(self.log_groups), 'total': len(self.log_groups)}


@dataclass
class StreamsResponse:
    streams: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {'streams': list(self.streams), 'total': len(self.streams)}


class HealthCheckStatus:
    SUCCESS = "SUCCESS"
    NO_DATA = "NO_DATA"


@dataclass
class KinesisHealthCheckResponse:
    status: str
    input_type: Optional[str]
    explanation: str
    message_fields: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def no_data(cls, stream_name: str) -> 'KinesisHealthCheckResponse':
        return cls(
            status=HealthCheckStatus.NO_DATA,
            input_type=None,
            explanation=f"No records were found in any shard of stream [{stream_name}]. "
                        f"Make sure data is being written to the stream."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status,
            'input_type': self.input_type,
            'explanation': self.explanation,
            'message_fields': self.message_fields
        }


@dataclass
class InputSummary:
    """Handle returned after an input is registered"""
    id: str
    title: str
    type: str
    name: str
    global_input: bool
    configuration: Dict[str, Any]
    creator_user_id: Optional[str]
    created_at: Any

    @property
    def stream_name(self) -> Optional[str]:
        return self.configuration.get('stream_name')

    def to_dict(self) -> Dict[str, Any]:
        configuration = dict(self.configuration)
        if configuration.get('aws_secret_access_key'):
            configuration['aws_secret_access_key'] = REDACTED
        return {
            'id': self.id,
            'title': self.title,
            'type': self.type,
            'name': self.name,
            'global': self.global_input,
            'configuration': configuration,
            'creator_user_id': self.creator_user_id,
            'created_at': self.created_at.isoformat() if hasattr(self.created_at, 'isoformat') else self.created_at
        }
