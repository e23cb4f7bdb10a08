# logbridge/routes/aws.py

"""
AWS integration endpoints and the input type catalogue.

Routes are declared in ``ROUTES`` and bound in one loop, so every handler
gets the same authentication, permission and audit wrapping. Handlers only
parse the body, call one service operation and serialize the result.
"""

from typing import Any, Callable, NamedTuple, Optional, Tuple

from flask import Blueprint, current_app, g, request

from logbridge.audit import MESSAGE_INPUT_CREATE, audit_event
from logbridge.auth import AWS_READ, INPUTS_CREATE, INPUTS_READ, login_required, permission_required
from logbridge.aws.models import AWSInputCreateRequest, AWSRequest, KinesisHealthCheckRequest
from logbridge.errors import ValidationError
from logbridge.inputs import describe_input_types


bp = Blueprint('aws', __name__)


def _services():
    return current_app.extensions['logbridge']


def _json_body() -> Any:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def get_aws_regions() -> Tuple[dict, int]:
    return _services().aws_service.get_available_regions().to_dict(), 200


def get_available_services() -> Tuple[dict, int]:
    return _services().aws_service.get_available_services().to_dict(), 200


def get_log_group_names() -> Tuple[dict, int]:
    aws_request = AWSRequest.from_dict(_json_body())
    response = _services().cloudwatch_service.get_log_group_names(
        aws_request.region, aws_request.aws_access_key_id, aws_request.aws_secret_access_key)
    return response.to_dict(), 200


def get_kinesis_streams() -> Tuple[dict, int]:
    aws_request = AWSRequest.from_dict(_json_body())
    response = _services().kinesis_service.get_kinesis_stream_names(
        aws_request.region, aws_request.aws_access_key_id, aws_request.aws_secret_access_key)
    return response.to_dict(), 200


def kinesis_health_check() -> Tuple[dict, int]:
    health_check_request = KinesisHealthCheckRequest.from_dict(_json_body())
    response = _services().kinesis_service.health_check(health_check_request)
    return response.to_dict(), 202


def create_input() -> Tuple[dict, int]:
    save_request = AWSInputCreateRequest.from_dict(_json_body())
    summary = _services().aws_service.save_input(save_request, g.user)
    return summary.to_dict(), 200


def get_input_types() -> Tuple[dict, int]:
    types = describe_input_types()
    return {'types': types, 'total': len(types)}, 200


class Route(NamedTuple):
    rule: str
    methods: Tuple[str, ...]
    handler: Callable[[], Tuple[dict, int]]
    permission: str
    audit_event: Optional[str] = None


ROUTES = [
    Route('/aws/regions', ('GET',), get_aws_regions, AWS_READ),
    Route('/aws/available_services', ('GET',), get_available_services, AWS_READ),
    Route('/aws/cloudwatch/log_groups', ('POST',), get_log_group_names, AWS_READ),
    Route('/aws/kinesis/streams', ('POST',), get_kinesis_streams, AWS_READ),
    Route('/aws/kinesis/health_check', ('POST',), kinesis_health_check, AWS_READ),
    Route('/aws/inputs', ('POST',), create_input, INPUTS_CREATE, MESSAGE_INPUT_CREATE),
    Route('/inputs/types', ('GET',), get_input_types, INPUTS_READ),
]


def wrap_route(route: Route) -> Callable:
    """Apply the middleware chain: authentication, permission, then audit"""
    view = route.handler
    if route.audit_event:
        view = audit_event(route.audit_event)(view)
    view = permission_required(route.permission)(view)
    return login_required(view)


def register_routes(blueprint: Blueprint) -> None:
    for route in ROUTES:
        blueprint.add_url_rule(
            route.rule,
            endpoint=route.handler.__name__,
            view_func=wrap_route(route),
            methods=list(route.methods)
        )


register_routes(bp)
