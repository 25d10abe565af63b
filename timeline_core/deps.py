from .overrides import EventRepository
from .policies import DefaultAttributePolicy

repository = EventRepository()
attribute_policy = DefaultAttributePolicy()


def get_repository() -> EventRepository:
    """Shared event repository of this process."""
    return repository


def get_attribute_policy() -> DefaultAttributePolicy:
    return attribute_policy
