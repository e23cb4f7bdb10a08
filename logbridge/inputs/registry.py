# logbridge/inputs/registry.py

import logging
import threading
from typing import Dict, Optional, List, Any, Callable

from pymongo.errors import PyMongoError

from logbridge.errors import DuplicateInputError, ValidationError

logger = logging.getLogger(__name__)

# (existing input document, candidate input document) -> is duplicate
UniquenessPredicate = Callable[[Dict[str, Any], Dict[str, Any]], bool]


def _same_name(existing: Dict[str, Any], candidate: Dict[str, Any]) -> bool:
    return existing.get('title') == candidate.get('title')


def _same_stream(existing: Dict[str, Any], candidate: Dict[str, Any]) -> bool:
    existing_config = existing.get('configuration', {})
    candidate_config = candidate.get('configuration', {})
    return (
        existing_config.get('stream_name') is not None
        and existing_config.get('stream_name') == candidate_config.get('stream_name')
        and existing_config.get('region') == candidate_config.get('region')
    )


UNIQUENESS_POLICIES: Dict[str, UniquenessPredicate] = {
    'none': lambda existing, candidate: False,
    'name': _same_name,
    'stream': _same_stream,
    'name_and_stream': lambda existing, candidate: (
        _same_name(existing, candidate) and _same_stream(existing, candidate)
    ),
}


def resolve_uniqueness_policy(policy) -> UniquenessPredicate:
    """Accept a policy name or a ready predicate"""
    if callable(policy):
        return policy
    try:
        return UNIQUENESS_POLICIES[policy or 'none']
    except KeyError:
        raise ValueError(f"Unknown input uniqueness policy: {policy}")


class InputRegistry:
    """
    Durable record of created inputs.

    Records are kept in memory and, when a MongoDB collection is supplied,
    written through to it. Uniqueness is decided by a configurable predicate.
    """

    def __init__(self, collection=None, uniqueness_policy='none'):
        self.collection = collection
        self.is_duplicate = resolve_uniqueness_policy(uniqueness_policy)
        self._inputs: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def _existing(self) -> List[Dict[str, Any]]:
        if self.collection is None:
            return list(self._inputs.values())
        return list(self.collection.find({"deleted": {"$ne": True}}, {"_id": 0}))

    def register(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """
        Store a new input document.

        Raises:
            ValidationError: Document has no id
            DuplicateInputError: Uniqueness predicate matched an existing input
        """
        input_id = document.get('id')
        if not input_id:
            raise ValidationError("Input document requires an id")

        with self._lock:
            for existing in self._existing():
                if self.is_duplicate(existing, document):
                    raise DuplicateInputError(
                        f"An input equivalent to [{document.get('title')}] already exists "
                        f"(id {existing.get('id')})")

            if self.collection is not None:
                try:
                    self.collection.insert_one(dict(document))
                except PyMongoError as e:
                    logger.error(f"Failed to persist input {input_id}: {str(e)}")
                    raise

            self._inputs[input_id] = document

        logger.info(f"Registered input {input_id} ({document.get('type')})")
        return document

    def get(self, input_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            document = self._inputs.get(input_id)
        if document is None and self.collection is not None:
            document = self.collection.find_one({"id": input_id, "deleted": {"$ne": True}}, {"_id": 0})
        return document

    def list_all(self) -> List[Dict[str, Any]]:
        with self._lock:
            return self._existing()

    def __len__(self) -> int:
        return len(self.list_all())
