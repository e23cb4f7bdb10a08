# logbridge/aws/flow_logs.py

"""
Detection of the payload format carried by a Kinesis record.

CloudWatch subscriptions deliver gzip compressed JSON envelopes holding
one or more log events; anything else on the stream is treated as raw
text written directly by a producer.
"""

import gzip
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from logbridge.aws.models import AWSMessageType

logger = logging.getLogger(__name__)

GZIP_MAGIC = b'\x1f\x8b'

# Default (version 2) VPC flow log layout
FLOW_LOG_FIELDS = [
    'version', 'account_id', 'interface_id', 'src_addr', 'dst_addr',
    'src_port', 'dst_port', 'protocol', 'packets', 'bytes',
    'start', 'end', 'action', 'log_status'
]
NUMERIC_FLOW_LOG_FIELDS = {'version', 'src_port', 'dst_port', 'protocol', 'packets', 'bytes', 'start', 'end'}


@dataclass
class CloudWatchLogEvent:
    id: str
    timestamp: int
    message: str


@dataclass
class CloudWatchLogSubscriptionData:
    """Envelope CloudWatch writes to a subscribed Kinesis stream"""
    message_type: str
    owner: str
    log_group: str
    log_stream: str
    log_events: List[CloudWatchLogEvent] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'CloudWatchLogSubscriptionData':
        log_events = []
        events = data.get('logEvents')
        for event in events if isinstance(events, list) else []:
            if not isinstance(event, dict):
                continue
            try:
                log_events.append(CloudWatchLogEvent(
                    id=str(event.get('id', '')),
                    timestamp=int(event.get('timestamp') or 0),
                    message=str(event.get('message') or '')
                ))
            except (TypeError, ValueError):
                logger.debug(f"Skipping malformed log event: {event!r}")
        return cls(
            message_type=str(data.get('messageType') or ''),
            owner=str(data.get('owner') or ''),
            log_group=str(data.get('logGroup') or ''),
            log_stream=str(data.get('logStream') or ''),
            log_events=log_events
        )


def parse_flow_log(message: str) -> Optional[Dict[str, Any]]:
    """Parse a default format flow log line, or return None when it is not one"""
    parts = message.strip().split()
    if len(parts) != len(FLOW_LOG_FIELDS):
        return None
    if not parts[0].isdigit() or not parts[2].startswith('eni-'):
        return None

    fields: Dict[str, Any] = {}
    for name, value in zip(FLOW_LOG_FIELDS, parts):
        if name in NUMERIC_FLOW_LOG_FIELDS and value.isdigit():
            fields[name] = int(value)
        else:
            fields[name] = value
    return fields


def decode_subscription_payload(payload: bytes) -> Optional[CloudWatchLogSubscriptionData]:
    """Return the CloudWatch envelope for gzip payloads, None for anything else"""
    if not payload.startswith(GZIP_MAGIC):
        return None
    try:
        data = json.loads(gzip.decompress(payload))
        if not isinstance(data, dict) or not ('messageType' in data or 'logEvents' in data):
            logger.debug("Compressed record is not a CloudWatch envelope")
            return None
        return CloudWatchLogSubscriptionData.from_json(data)
    except (OSError, EOFError, ValueError, TypeError, AttributeError) as e:
        logger.debug(f"Compressed record is not a CloudWatch envelope: {str(e)}")
        return None


def _timestamp(millis: int) -> Optional[str]:
    try:
        return datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return None


def detect_record(payload: bytes, arrival_timestamp: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Classify one Kinesis record.

    Returns a dict with ``input_type``, ``explanation`` and ``message_fields``.
    """
    envelope = decode_subscription_payload(payload)

    if envelope is None:
        message = payload.decode('utf-8', errors='replace')
        fields = {'message': message}
        if arrival_timestamp is not None:
            fields['timestamp'] = arrival_timestamp.isoformat()
        return {
            'input_type': AWSMessageType.KINESIS_RAW,
            'explanation': "The stream contains raw log messages that were not written by "
                           "a CloudWatch subscription.",
            'message_fields': fields
        }

    events = [event for event in envelope.log_events if event.message]
    if not events:
        return {
            'input_type': AWSMessageType.KINESIS_CLOUDWATCH_RAW,
            'explanation': f"The stream is subscribed to log group [{envelope.log_group}] "
                           f"but the sampled record carried no log events.",
            'message_fields': {'log_group': envelope.log_group, 'log_stream': envelope.log_stream}
        }

    event = events[0]
    base_fields = {
        'log_group': envelope.log_group,
        'log_stream': envelope.log_stream,
        'owner': envelope.owner,
        'timestamp': _timestamp(event.timestamp)
    }

    flow_log = parse_flow_log(event.message)
    if flow_log is not None:
        base_fields.update(flow_log)
        return {
            'input_type': AWSMessageType.KINESIS_CLOUDWATCH_FLOW_LOGS,
            'explanation': f"Success. The stream contains VPC flow logs from log group "
                           f"[{envelope.log_group}].",
            'message_fields': base_fields
        }

    base_fields['message'] = event.message
    return {
        'input_type': AWSMessageType.KINESIS_CLOUDWATCH_RAW,
        'explanation': f"Success. The stream contains CloudWatch log messages from log group "
                       f"[{envelope.log_group}].",
        'message_fields': base_fields
    }
