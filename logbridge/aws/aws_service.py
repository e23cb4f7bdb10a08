# logbridge/aws/aws_service.py

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from logbridge.aws.models import (
    AWSInputCreateRequest,
    AvailableServiceResponse,
    InputSummary,
    RegionsResponse,
)
from logbridge.aws.regions import AVAILABLE_SERVICES, list_regions
from logbridge.inputs import AWSInput, get_input_name
from logbridge.inputs.registry import InputRegistry

logger = logging.getLogger(__name__)


class AWSService:
    """Static AWS metadata and AWS input creation"""

    def __init__(self, input_registry: InputRegistry):
        self.input_registry = input_registry

    def get_available_regions(self) -> RegionsResponse:
        return RegionsResponse(regions=list_regions())

    def get_available_services(self) -> AvailableServiceResponse:
        return AvailableServiceResponse(services=AVAILABLE_SERVICES)

    def save_input(self, request: AWSInputCreateRequest,
                   user: Optional[Dict[str, Any]] = None) -> InputSummary:
        """
        Validate and register a new AWS input.

        The call is at-most-once: there is no client supplied
        deduplication token, so a retried request creates a second input
        unless the uniqueness policy rejects it.

        Raises:
            ValidationError: Malformed request
            DuplicateInputError: Registry found an equivalent input
        """
        request.ensure_valid()

        document = {
            'id': str(uuid.uuid4()),
            'title': request.name,
            'description': request.description,
            'type': AWSInput.TYPE,
            'global': request.global_input,
            'configuration': request.to_configuration(),
            'creator_user_id': user.get('username') if user else None,
            'created_at': datetime.now(timezone.utc),
        }
        self.input_registry.register(document)

        logger.info(f"Created {request.aws_input_type} input {document['id']} "
                    f"for stream {request.stream_name} in {request.region}")
        return self.summarize(document)

    @staticmethod
    def summarize(document: Dict[str, Any]) -> InputSummary:
        return InputSummary(
            id=document['id'],
            title=document['title'],
            type=document['type'],
            name=get_input_name(document['type']),
            global_input=document.get('global', False),
            configuration=document.get('configuration', {}),
            creator_user_id=document.get('creator_user_id'),
            created_at=document.get('created_at'),
        )
