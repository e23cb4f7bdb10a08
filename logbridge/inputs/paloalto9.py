# logbridge/inputs/paloalto9.py

"""
Palo Alto Networks PAN-OS 9.x syslog input.

PAN-OS sends one CSV record per syslog frame. The record type sits in
the fourth column and decides the column layout; TRAFFIC, THREAT and
SYSTEM records are mapped to named fields, other types keep only the
columns every record shares.
"""

import csv
import logging
import re
from datetime import datetime
from typing import Optional, Dict, Any, List

import pytz

from logbridge.inputs.base import (
    Codec,
    ConfigurationField,
    InputDescriptor,
    MessageInput,
    RawMessage,
)
from logbridge.inputs.transports import SyslogTcpTransport

logger = logging.getLogger(__name__)

NAME = "Palo Alto Networks TCP (PAN-OS v9.x)"
TYPE = "logbridge.inputs.paloalto9.PaloAlto9xInput"

PAN_TIMESTAMP_FORMAT = '%Y/%m/%d %H:%M:%S'

PRI_PATTERN = re.compile(r'^<(?P<pri>\d{1,3})>')
BSD_HEADER = re.compile(
    r'^(?P<timestamp>[A-Z][a-z]{2}\s+\d{1,2} \d{2}:\d{2}:\d{2}) (?P<host>\S+) (?P<body>.*)$', re.S)
IETF_HEADER = re.compile(
    r'^1 (?P<timestamp>\S+) (?P<host>\S+) \S+ \S+ \S+ (?:-|\[.*?\]) ?(?P<body>.*)$', re.S)

# Columns shared by every record type
COMMON_FIELDS = {
    1: 'receive_time',
    2: 'serial_number',
    3: 'type',
    4: 'subtype',
    6: 'generated_time',
}

_SESSION_FIELDS = {
    7: 'source_ip',
    8: 'destination_ip',
    9: 'nat_source_ip',
    10: 'nat_destination_ip',
    11: 'rule_name',
    12: 'source_user',
    13: 'destination_user',
    14: 'application',
    15: 'virtual_system',
    16: 'source_zone',
    17: 'destination_zone',
    18: 'inbound_interface',
    19: 'outbound_interface',
    20: 'log_action',
    22: 'session_id',
    23: 'repeat_count',
    24: 'source_port',
    25: 'destination_port',
    26: 'nat_source_port',
    27: 'nat_destination_port',
    28: 'flags',
    29: 'protocol',
    30: 'action',
}

FIELD_MAPS = {
    'TRAFFIC': {**_SESSION_FIELDS, **{
        31: 'bytes',
        32: 'bytes_sent',
        33: 'bytes_received',
        34: 'packets',
        35: 'start_time',
        36: 'elapsed_time',
        37: 'category',
        39: 'sequence_number',
        40: 'action_flags',
        41: 'source_location',
        42: 'destination_location',
        44: 'packets_sent',
        45: 'packets_received',
        46: 'session_end_reason',
    }},
    'THREAT': {**_SESSION_FIELDS, **{
        31: 'url_filename',
        32: 'threat_id',
        33: 'category',
        34: 'severity',
        35: 'direction',
        36: 'sequence_number',
        37: 'action_flags',
        38: 'source_location',
        39: 'destination_location',
        41: 'content_type',
    }},
    'SYSTEM': {
        7: 'virtual_system',
        8: 'event_id',
        9: 'object',
        12: 'module',
        13: 'severity',
        14: 'description',
        15: 'sequence_number',
        16: 'action_flags',
    },
}

INTEGER_FIELDS = {
    'session_id', 'repeat_count', 'source_port', 'destination_port',
    'nat_source_port', 'nat_destination_port', 'bytes', 'bytes_sent',
    'bytes_received', 'packets', 'packets_sent', 'packets_received',
    'elapsed_time', 'sequence_number',
}

TIMESTAMP_FIELDS = {'receive_time', 'generated_time', 'start_time'}


class PaloAlto9xCodec(Codec):
    """Decodes PAN-OS 9.x CSV syslog records"""

    def __init__(self, configuration: Dict[str, Any]):
        self.timezone = pytz.timezone(configuration.get('timezone') or 'UTC')
        self.store_full_message = bool(configuration.get('store_full_message', False))

    @classmethod
    def requested_configuration(cls) -> List[ConfigurationField]:
        return [
            ConfigurationField('timezone', 'Time Zone', 'UTC',
                               'Time zone of the firewall, used for the CSV timestamps'),
            ConfigurationField('store_full_message', 'Store full message', False,
                               'Keep the original syslog line in full_message')
        ]

    def _to_utc(self, value: str) -> Optional[str]:
        try:
            local = datetime.strptime(value, PAN_TIMESTAMP_FORMAT)
        except ValueError:
            return None
        return self.timezone.localize(local).astimezone(pytz.utc).isoformat()

    @staticmethod
    def _split_header(line: str) -> Dict[str, Optional[str]]:
        pri = None
        match = PRI_PATTERN.match(line)
        if match:
            pri = match.group('pri')
            line = line[match.end():]

        for pattern in (IETF_HEADER, BSD_HEADER):
            header = pattern.match(line)
            if header:
                return {'pri': pri, 'host': header.group('host'), 'body': header.group('body')}
        return {'pri': pri, 'host': None, 'body': line}

    def decode(self, raw: RawMessage) -> Optional[Dict[str, Any]]:
        line = raw.payload.decode('utf-8', errors='replace').strip()
        if not line:
            return None

        header = self._split_header(line)
        try:
            columns = next(csv.reader([header['body']]))
        except (csv.Error, StopIteration) as e:
            logger.warning(f"Unparseable PAN-OS record from {raw.remote_address}: {str(e)}")
            return None

        if len(columns) < 7:
            logger.warning(f"PAN-OS record from {raw.remote_address} has only {len(columns)} columns")
            return None

        log_type = columns[3].strip().upper()
        field_map = {**COMMON_FIELDS, **FIELD_MAPS.get(log_type, {})}

        fields: Dict[str, Any] = {}
        for index, name in field_map.items():
            if index >= len(columns) or columns[index] == '':
                continue
            value = columns[index]
            if name in INTEGER_FIELDS and value.isdigit():
                fields[name] = int(value)
            elif name in TIMESTAMP_FIELDS:
                fields[name] = self._to_utc(value) or value
            else:
                fields[name] = value

        source = header['host']
        if not source and raw.remote_address:
            source = raw.remote_address[0]

        message: Dict[str, Any] = {
            'message': header['body'],
            'source': source,
            'timestamp': fields.get('receive_time') or raw.received_at.isoformat(),
            'pan_log_type': log_type,
            'event_source_product': 'PAN',
        }
        if header['pri'] is not None:
            pri = int(header['pri'])
            message['facility'] = pri // 8
            message['level'] = pri % 8
        message.update(fields)
        if self.store_full_message:
            message['full_message'] = line
        return message


class PaloAlto9xInput:
    """Factory pairing the syslog TCP transport with the PAN-OS 9 codec"""

    NAME = NAME
    TYPE = TYPE
    descriptor = InputDescriptor(name=NAME, exclusive=False, link='')

    @classmethod
    def create(cls, configuration: Dict[str, Any]) -> MessageInput:
        return MessageInput(
            transport=SyslogTcpTransport(configuration),
            codec=PaloAlto9xCodec(configuration),
            descriptor=cls.descriptor,
            configuration=configuration
        )

    @classmethod
    def get_config(cls) -> List[ConfigurationField]:
        return SyslogTcpTransport.requested_configuration() + PaloAlto9xCodec.requested_configuration()

    @classmethod
    def get_descriptor(cls) -> InputDescriptor:
        return cls.descriptor
