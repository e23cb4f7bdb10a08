from typing import Any, Dict, List

from logbridge.inputs.aws import AWSInput
from logbridge.inputs.paloalto9 import PaloAlto9xInput

# Input type -> factory
AVAILABLE_INPUTS = {
    AWSInput.TYPE: AWSInput,
    PaloAlto9xInput.TYPE: PaloAlto9xInput,
}


def get_input_name(input_type: str) -> str:
    factory = AVAILABLE_INPUTS.get(input_type)
    return factory.NAME if factory else input_type


def describe_input_types() -> List[Dict[str, Any]]:
    """Descriptor and requested configuration of every available input type"""
    types = []
    for input_type, factory in AVAILABLE_INPUTS.items():
        descriptor = factory.get_descriptor()
        types.append({
            'type': input_type,
            'name': descriptor.name,
            'exclusive': descriptor.exclusive,
            'link': descriptor.link,
            'requested_configuration': [field.to_dict() for field in factory.get_config()]
        })
    return types


__all__ = ['AVAILABLE_INPUTS', 'AWSInput', 'PaloAlto9xInput', 'describe_input_types', 'get_input_name']
