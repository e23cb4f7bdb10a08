from dataclasses import dataclass

from flask_pymongo import PyMongo

from logbridge.aws import AWSClientFactory, AWSService, CloudWatchService, KinesisService
from logbridge.inputs.registry import InputRegistry

mongo = PyMongo()


@dataclass
class ServiceContainer:
    """Gateway services shared by the request handlers"""
    aws_service: AWSService
    cloudwatch_service: CloudWatchService
    kinesis_service: KinesisService
    input_registry: InputRegistry


def init_extensions(app):
    """Initialize Flask extensions. MongoDB is optional."""
    if app.config.get('MONGO_URI'):
        mongo.init_app(app)
        return True
    return False


def build_services(app, uniqueness_policy=None) -> ServiceContainer:
    """Create the service container from application configuration"""
    client_factory = AWSClientFactory(
        connect_timeout=app.config['AWS_CONNECT_TIMEOUT'],
        read_timeout=app.config['AWS_READ_TIMEOUT'],
        endpoint_url=app.config.get('AWS_ENDPOINT_URL')
    )
    collection = mongo.db.inputs if app.config.get('MONGO_URI') else None
    input_registry = InputRegistry(
        collection=collection,
        uniqueness_policy=uniqueness_policy or app.config['INPUT_UNIQUENESS_POLICY']
    )
    return ServiceContainer(
        aws_service=AWSService(input_registry),
        cloudwatch_service=CloudWatchService(client_factory),
        kinesis_service=KinesisService(
            client_factory,
            operation_timeout=app.config['AWS_OPERATION_TIMEOUT'],
            max_records=app.config['KINESIS_HEALTH_CHECK_MAX_RECORDS']
        ),
        input_registry=input_registry
    )
