"""
Tests for Kinesis record classification.
"""
import gzip
import json

import pytest

from logbridge.aws.flow_logs import decode_subscription_payload, detect_record, parse_flow_log
from logbridge.aws.models import AWSMessageType

FLOW_LOG_LINE = ('2 123456789010 eni-1235b8ca123456789 172.31.16.139 172.31.16.21 '
                 '20641 22 6 20 4249 1418530010 1418530070 ACCEPT OK')

NOT_AN_ENVELOPE = [
    b'[1, 2]',
    b'"text"',
    b'42',
    b'{"level": "info"}',
]

MALFORMED_ENVELOPES = [
    b'{"logEvents": ["x"]}',
    b'{"logEvents": [{"timestamp": null}]}',
    b'{"logEvents": [{"timestamp": "soon", "message": "hello"}]}',
    b'{"logEvents": 7}',
    b'{"messageType": "DATA_MESSAGE", "logEvents": null}',
    b'{"logEvents": [{"timestamp": 99999999999999999999, "message": "hello"}]}',
]


def test_parse_flow_log():
    fields = parse_flow_log(FLOW_LOG_LINE)
    assert fields['src_addr'] == '172.31.16.139'
    assert fields['packets'] == 20
    assert fields['log_status'] == 'OK'


@pytest.mark.parametrize('line', ['', 'hello world', FLOW_LOG_LINE.replace('eni-', 'abc-')])
def test_parse_flow_log_rejects_other_lines(line):
    assert parse_flow_log(line) is None


def test_uncompressed_payload_is_not_an_envelope():
    assert decode_subscription_payload(b'{"logEvents": []}') is None


@pytest.mark.parametrize('document', NOT_AN_ENVELOPE)
def test_compressed_json_without_envelope_keys(document):
    assert decode_subscription_payload(gzip.compress(document)) is None


def test_truncated_gzip():
    assert decode_subscription_payload(gzip.compress(b'{"logEvents": []}')[:8]) is None


@pytest.mark.parametrize('document', NOT_AN_ENVELOPE + MALFORMED_ENVELOPES)
def test_detect_record_never_raises_on_content(document):
    result = detect_record(gzip.compress(document))
    assert result['input_type'] in AWSMessageType.LABELS


def test_malformed_events_are_skipped():
    payload = gzip.compress(json.dumps({
        'messageType': 'DATA_MESSAGE',
        'logGroup': 'app',
        'logEvents': ['x', {'timestamp': 'soon'}, {'id': '1', 'timestamp': 1418530010000,
                                                   'message': 'real event'}]
    }).encode('utf-8'))

    envelope = decode_subscription_payload(payload)

    assert [event.message for event in envelope.log_events] == ['real event']
    result = detect_record(payload)
    assert result['input_type'] == AWSMessageType.KINESIS_CLOUDWATCH_RAW
    assert result['message_fields']['message'] == 'real event'


def test_envelope_without_events():
    result = detect_record(gzip.compress(b'{"logEvents": ["x"], "logGroup": "app"}'))
    assert result['input_type'] == AWSMessageType.KINESIS_CLOUDWATCH_RAW
    assert result['message_fields']['log_group'] == 'app'
