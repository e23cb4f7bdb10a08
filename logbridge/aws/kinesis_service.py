# logbridge/aws/kinesis_service.py

import logging
import time
from typing import List, Dict, Any, Optional

from logbridge.aws.client import AWSClientFactory, translate_aws_errors
from logbridge.aws.flow_logs import detect_record
from logbridge.aws.models import (
    AWSRequest,
    HealthCheckStatus,
    KinesisHealthCheckRequest,
    KinesisHealthCheckResponse,
    StreamsResponse,
)
from logbridge.errors import OperationTimeoutError

logger = logging.getLogger(__name__)

# get_records calls per shard before giving up on it
MAX_POLLS_PER_SHARD = 5


class KinesisService:
    """Kinesis stream discovery and health check"""

    def __init__(self, client_factory: AWSClientFactory, operation_timeout: float = 30,
                 max_records: int = 10):
        self.client_factory = client_factory
        self.operation_timeout = operation_timeout
        self.max_records = max_records

    def _deadline(self) -> float:
        return time.monotonic() + self.operation_timeout

    def _check_deadline(self, deadline: float, operation: str) -> None:
        if time.monotonic() > deadline:
            raise OperationTimeoutError(
                f"{operation} did not complete within {self.operation_timeout} seconds")

    def get_kinesis_stream_names(self, region: str, access_key_id: str,
                                 secret_access_key: str) -> StreamsResponse:
        """
        List all Kinesis stream names in the region.

        The whole listing shares one time budget. A timeout is raised as
        OperationTimeoutError and is never retried here.
        """
        request = AWSRequest(region=region, aws_access_key_id=access_key_id,
                             aws_secret_access_key=secret_access_key)
        request.ensure_valid()

        deadline = self._deadline()
        stream_names: List[str] = []
        with translate_aws_errors('ListStreams', region):
            client = self.client_factory.client('kinesis', request)
            kwargs: Dict[str, Any] = {}
            while True:
                self._check_deadline(deadline, 'ListStreams')
                response = client.list_streams(**kwargs)
                names = response.get('StreamNames', [])
                stream_names.extend(names)
                if not response.get('HasMoreStreams') or not names:
                    break
                kwargs = {'ExclusiveStartStreamName': names[-1]}

        logger.info(f"Found {len(stream_names)} Kinesis streams in {region}")
        return StreamsResponse(streams=stream_names)

    def _list_shard_ids(self, client, stream_name: str, deadline: float) -> List[str]:
        shard_ids: List[str] = []
        kwargs: Dict[str, Any] = {'StreamName': stream_name}
        while True:
            self._check_deadline(deadline, 'ListShards')
            response = client.list_shards(**kwargs)
            shard_ids.extend(shard['ShardId'] for shard in response.get('Shards', []))
            next_token = response.get('NextToken')
            if not next_token:
                return shard_ids
            # NextToken must be sent without the stream name
            kwargs = {'NextToken': next_token}

    def _read_first_record(self, client, stream_name: str, shard_id: str,
                           deadline: float) -> Optional[Dict[str, Any]]:
        iterator = client.get_shard_iterator(
            StreamName=stream_name,
            ShardId=shard_id,
            ShardIteratorType='TRIM_HORIZON'
        ).get('ShardIterator')

        for _ in range(MAX_POLLS_PER_SHARD):
            if not iterator:
                return None
            self._check_deadline(deadline, 'GetRecords')
            response = client.get_records(ShardIterator=iterator, Limit=self.max_records)
            records = response.get('Records', [])
            if records:
                return records[0]
            if response.get('MillisBehindLatest', 0) == 0:
                return None
            iterator = response.get('NextShardIterator')
        return None

    def health_check(self, request: KinesisHealthCheckRequest) -> KinesisHealthCheckResponse:
        """
        Read one record from the stream and report what kind of logs it carries.

        An empty stream is a valid state reported as NO_DATA, not an error.
        """
        request.ensure_valid()
        stream_name = request.stream_name
        logger.info(f"Starting health check for stream {stream_name} in {request.region}")

        deadline = self._deadline()
        record = None
        with translate_aws_errors('KinesisHealthCheck', request.region, stream_name=stream_name):
            client = self.client_factory.client('kinesis', request)
            for shard_id in self._list_shard_ids(client, stream_name, deadline):
                record = self._read_first_record(client, stream_name, shard_id, deadline)
                if record is not None:
                    break

        if record is None:
            logger.info(f"Stream {stream_name} has no records available")
            return KinesisHealthCheckResponse.no_data(stream_name)

        detected = detect_record(record['Data'], record.get('ApproximateArrivalTimestamp'))
        logger.info(f"Health check for stream {stream_name} detected {detected['input_type']}")
        return KinesisHealthCheckResponse(
            status=HealthCheckStatus.SUCCESS,
            input_type=detected['input_type'],
            explanation=detected['explanation'],
            message_fields=detected['message_fields']
        )
