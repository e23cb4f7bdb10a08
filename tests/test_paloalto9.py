"""
Tests for the PAN-OS 9.x syslog input: framing, decoding and lifecycle.
"""
import socket
import threading
from unittest.mock import Mock

import pytest

from logbridge.errors import InputMisfireError
from logbridge.inputs import AVAILABLE_INPUTS, PaloAlto9xInput
from logbridge.inputs.base import InputStatus, MessageInput, RawMessage
from logbridge.inputs.buffer import InputBuffer
from logbridge.inputs.paloalto9 import FIELD_MAPS, PaloAlto9xCodec
from logbridge.inputs.transports import SyslogFramingError, SyslogTcpTransport, split_frames


def pan_record(log_type, columns, width):
    """Build a PAN-OS CSV body with ``columns`` (index -> value) filled in"""
    row = [''] * width
    row[0] = '1'
    row[1] = '2019/06/14 09:15:00'
    row[2] = '007051000012345'
    row[3] = log_type
    row[6] = '2019/06/14 09:14:59'
    for index, value in columns.items():
        row[index] = value
    return ','.join(row)


TRAFFIC = pan_record('TRAFFIC', {
    4: 'end', 7: '10.0.0.5', 8: '8.8.8.8', 11: 'allow-dns', 14: 'dns', 15: 'vsys1',
    16: 'trust', 17: 'untrust', 22: '34281', 24: '53712', 25: '53', 29: 'udp',
    30: 'allow', 31: '180', 34: '2', 42: 'United States', 46: 'aged-out',
}, 47)

THREAT = pan_record('THREAT', {
    4: 'url', 7: '10.0.0.5', 8: '93.184.216.34', 14: 'web-browsing', 25: '80',
    30: 'alert', 31: 'example.com/index.html', 32: '(9999)', 34: 'informational',
    35: 'client-to-server',
}, 42)

SYSTEM = pan_record('SYSTEM', {
    4: 'general', 8: 'general', 13: 'informational',
    14: 'User admin logged in via Web from 10.0.0.9',
}, 17)


def raw(payload, address=('192.0.2.10', 50514)):
    if isinstance(payload, str):
        payload = payload.encode('utf-8')
    return RawMessage(payload=payload, remote_address=address)


@pytest.fixture
def codec():
    return PaloAlto9xCodec({'timezone': 'UTC'})


class TestCodec:

    def test_traffic_record(self, codec):
        message = codec.decode(raw(f'<14>Jun 14 09:15:00 fw01.example.com {TRAFFIC}'))

        assert message['source'] == 'fw01.example.com'
        assert message['pan_log_type'] == 'TRAFFIC'
        assert message['event_source_product'] == 'PAN'
        assert message['facility'] == 1
        assert message['level'] == 6
        assert message['source_ip'] == '10.0.0.5'
        assert message['destination_port'] == 53
        assert message['session_id'] == 34281
        assert message['bytes'] == 180
        assert message['application'] == 'dns'
        assert message['destination_location'] == 'United States'
        assert message['session_end_reason'] == 'aged-out'
        assert message['message'] == TRAFFIC
        assert 'full_message' not in message

    def test_threat_record(self, codec):
        message = codec.decode(raw(f'<14>Jun 14 09:15:00 fw01 {THREAT}'))

        assert message['pan_log_type'] == 'THREAT'
        assert message['url_filename'] == 'example.com/index.html'
        assert message['threat_id'] == '(9999)'
        assert message['severity'] == 'informational'
        assert message['direction'] == 'client-to-server'

    def test_system_record(self, codec):
        message = codec.decode(raw(f'<14>Jun 14 09:15:00 fw01 {SYSTEM}'))

        assert message['pan_log_type'] == 'SYSTEM'
        assert message['event_id'] == 'general'
        assert message['description'] == 'User admin logged in via Web from 10.0.0.9'
        assert 'source_ip' not in message

    def test_unmapped_type_keeps_common_fields(self, codec):
        message = codec.decode(raw(pan_record('CONFIG', {4: '0'}, 20)))

        assert message['pan_log_type'] == 'CONFIG'
        assert message['serial_number'] == '007051000012345'
        assert message['subtype'] == '0'

    def test_timestamps_converted_to_utc(self):
        codec = PaloAlto9xCodec({'timezone': 'America/New_York'})
        message = codec.decode(raw(TRAFFIC))

        assert message['receive_time'] == '2019-06-14T13:15:00+00:00'
        assert message['generated_time'] == '2019-06-14T13:14:59+00:00'
        assert message['timestamp'] == message['receive_time']

    def test_ietf_header(self, codec):
        message = codec.decode(raw(f'<14>1 2019-06-14T09:15:00-04:00 fw02 - - - - {SYSTEM}'))

        assert message['source'] == 'fw02'
        assert message['pan_log_type'] == 'SYSTEM'

    def test_source_falls_back_to_peer(self, codec):
        message = codec.decode(raw(TRAFFIC))

        assert message['source'] == '192.0.2.10'
        assert 'facility' not in message

    def test_store_full_message(self):
        codec = PaloAlto9xCodec({'store_full_message': True})
        line = f'<14>Jun 14 09:15:00 fw01 {SYSTEM}'

        assert codec.decode(raw(line))['full_message'] == line

    @pytest.mark.parametrize('payload', [b'', b'   ', b'<14>Jun 14 09:15:00 fw01 1,2,3'])
    def test_unusable_payload(self, codec, payload):
        assert codec.decode(raw(payload)) is None


class TestFieldMaps:

    def test_session_fields_shared_by_traffic_and_threat(self):
        for log_type in ('TRAFFIC', 'THREAT'):
            assert FIELD_MAPS[log_type][7] == 'source_ip'
            assert FIELD_MAPS[log_type][30] == 'action'
        assert FIELD_MAPS['TRAFFIC'][46] == 'session_end_reason'
        assert FIELD_MAPS['THREAT'][32] == 'threat_id'

    @pytest.mark.parametrize('log_type, record, field, expected', [
        ('TRAFFIC', TRAFFIC, 'bytes', 180),
        ('THREAT', THREAT, 'threat_id', '(9999)'),
        ('SYSTEM', SYSTEM, 'event_id', 'general'),
    ])
    def test_each_type_decodes_through_input(self, log_type, record, field, expected):
        message_input = MessageInput(transport=Mock(), codec=PaloAlto9xCodec({}),
                                     descriptor=PaloAlto9xInput.descriptor)
        buffer = InputBuffer()
        message_input.launch(buffer)

        message_input.process_raw_message(raw(f'<14>Jun 14 09:15:00 fw01 {record}'))

        messages = buffer.drain()
        assert len(messages) == 1
        assert messages[0]['pan_log_type'] == log_type
        assert messages[0][field] == expected
        assert message_input.get_stats()['messages_failed'] == 0


class TestSplitFrames:

    def test_octet_counted(self):
        buffer = bytearray(b'11 hello world5 abcde')
        assert split_frames(buffer) == [b'hello world', b'abcde']
        assert buffer == bytearray()

    def test_delimited(self):
        buffer = bytearray(b'one\r\ntwo\x00three')
        assert split_frames(buffer) == [b'one', b'two']
        assert buffer == bytearray(b'three')

    def test_incomplete_octet_frame_waits(self):
        buffer = bytearray(b'20 short')
        assert split_frames(buffer) == []
        assert buffer == bytearray(b'20 short')

    def test_pan_line_is_not_mistaken_for_octet_count(self):
        buffer = bytearray(TRAFFIC.encode('utf-8') + b'\n')
        assert split_frames(buffer) == [TRAFFIC.encode('utf-8')]

    def test_oversized_frame(self):
        with pytest.raises(SyslogFramingError):
            split_frames(bytearray(b'999 x'), max_message_size=10)

    def test_delimited_frame_too_large(self):
        with pytest.raises(SyslogFramingError):
            split_frames(bytearray(b'x' * 100 + b'\n'), max_message_size=10)

    def test_delimited_frame_at_limit(self):
        assert split_frames(bytearray(b'x' * 10 + b'\n'), max_message_size=10) == [b'x' * 10]

    def test_unterminated_frame_too_large(self):
        with pytest.raises(SyslogFramingError):
            split_frames(bytearray(b'x' * 20), max_message_size=10)


class TestMessageInput:

    def create_input(self, transport=None):
        return MessageInput(transport=transport or Mock(), codec=PaloAlto9xCodec({}),
                            descriptor=PaloAlto9xInput.descriptor)

    def test_launch_twice_misfires(self):
        message_input = self.create_input()
        message_input.launch(InputBuffer())

        assert message_input.status == InputStatus.RUNNING
        with pytest.raises(InputMisfireError):
            message_input.launch(InputBuffer())
        message_input.transport.launch.assert_called_once()

    def test_transport_failure(self):
        transport = Mock()
        transport.launch.side_effect = OSError('address in use')
        message_input = self.create_input(transport)

        with pytest.raises(InputMisfireError):
            message_input.launch(InputBuffer())
        assert message_input.status == InputStatus.FAILED

    def test_decoded_messages_reach_buffer(self):
        message_input = self.create_input()
        buffer = InputBuffer()
        message_input.launch(buffer)

        message_input.process_raw_message(raw(SYSTEM))
        message_input.process_raw_message(raw(b'garbage'))

        messages = buffer.drain()
        assert len(messages) == 1
        assert messages[0]['input_id'] == message_input.id
        assert message_input.get_stats()['messages_failed'] == 1

    def test_stop(self):
        message_input = self.create_input()
        message_input.launch(InputBuffer())
        message_input.stop()

        assert message_input.status == InputStatus.STOPPED
        message_input.transport.stop.assert_called_once()

    def test_counters_are_thread_safe(self):
        message_input = self.create_input()
        message_input.launch(InputBuffer())

        def send():
            for _ in range(250):
                message_input.process_raw_message(raw(SYSTEM))
                message_input.process_raw_message(raw(b'garbage'))

        threads = [threading.Thread(target=send) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        stats = message_input.get_stats()
        assert stats['messages_decoded'] == 1000
        assert stats['messages_failed'] == 1000

    def test_stats_include_transport(self):
        transport = Mock()
        transport.get_stats.return_value = {'frames_received': 3}
        message_input = self.create_input(transport)

        assert message_input.get_stats()['transport'] == {'frames_received': 3}


class TestPaloAlto9xInput:

    def test_registered(self):
        assert AVAILABLE_INPUTS[PaloAlto9xInput.TYPE] is PaloAlto9xInput
        assert PaloAlto9xInput.get_descriptor().name == 'Palo Alto Networks TCP (PAN-OS v9.x)'

    def test_requested_configuration(self):
        names = [field.name for field in PaloAlto9xInput.get_config()]
        assert {'bind_address', 'port', 'timezone', 'store_full_message'} <= set(names)

    def test_receives_over_tcp(self):
        message_input = PaloAlto9xInput.create({'bind_address': '127.0.0.1', 'port': 0})
        buffer = InputBuffer()
        message_input.launch(buffer)
        try:
            port = message_input.transport.bound_port
            framed = f'<14>Jun 14 09:15:00 fw01 {SYSTEM}'.encode('utf-8')
            with socket.create_connection(('127.0.0.1', port), timeout=5) as sock:
                sock.sendall(f'<14>Jun 14 09:15:00 fw01 {TRAFFIC}\n'.encode('utf-8'))
                sock.sendall(str(len(framed)).encode('ascii') + b' ' + framed)

            first = buffer.get(timeout=5)
            second = buffer.get(timeout=5)
        finally:
            message_input.stop()

        assert first['pan_log_type'] == 'TRAFFIC'
        assert second['pan_log_type'] == 'SYSTEM'
        assert first['source'] == 'fw01'
        transport_stats = message_input.get_stats()['transport']
        assert transport_stats['frames_received'] == 2
        assert transport_stats['total_connections'] == 1
        assert transport_stats['framing_errors'] == 0

    def test_oversized_frame_drops_connection(self):
        received = []
        transport = SyslogTcpTransport({'bind_address': '127.0.0.1', 'port': 0, 'max_message_size': 64})
        transport.launch(received.append)
        try:
            with socket.create_connection(('127.0.0.1', transport.bound_port), timeout=5) as sock:
                sock.sendall(b'x' * 200 + b'\n')
                # Peer closes the connection after the framing error
                assert sock.recv(16) == b''
        finally:
            transport.stop()

        assert received == []
        assert transport.get_stats()['framing_errors'] == 1
