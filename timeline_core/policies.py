"""
Pluggable policies the materializer consults.

Both policies belong to the surrounding application rather than the
clustering core: the core only calls them. The defaults here reproduce the
stock context templates.
"""
import copy
import logging
import threading
from typing import Any, Callable, Dict, Mapping, Optional

from .models import Cluster, ContextType, TimelineContext

logger = logging.getLogger(__name__)

EventTypeResolver = Callable[[Cluster, TimelineContext], str]
AttributePolicy = Callable[[str, str], Dict[str, Any]]

COLLECTION_MIN_PHOTOS = 11

DEFAULT_ATTRIBUTE_TABLE: Dict[ContextType, Dict[str, Dict[str, Any]]] = {
    ContextType.PERSON: {
        "milestone": {
            "milestone_type": None,
            "significance": "medium",
        },
    },
    ContextType.PET: {
        "pet_milestone": {
            "weight_kg": None,
            "vaccine_type": None,
            "vet_visit": False,
            "mood": None,
        },
    },
    ContextType.PROJECT: {
        "renovation_progress": {
            "cost": 0.0,
            "contractor": None,
            "room": None,
            "phase": None,
        },
    },
    ContextType.BUSINESS: {
        "business_milestone": {
            "milestone": None,
            "budget_spent": 0.0,
            "team_size": None,
        },
    },
}


def default_event_type(cluster: Cluster, context: TimelineContext) -> str:
    """photo_burst for a cluster that is one burst, photo_collection for big ones, else photo."""
    if len(cluster.bursts) == 1 and len(cluster.bursts[0]) == len(cluster.members):
        return "photo_burst"
    if len(cluster.members) >= COLLECTION_MIN_PHOTOS:
        return "photo_collection"
    return "photo"


class DefaultAttributePolicy:
    """Looks up default custom attributes by the context's type and the event type."""

    def __init__(
        self,
        context_types: Optional[Mapping[str, ContextType]] = None,
        table: Optional[Dict[ContextType, Dict[str, Dict[str, Any]]]] = None,
    ):
        self._context_types: Dict[str, ContextType] = dict(context_types or {})
        self._table = copy.deepcopy(table if table is not None else DEFAULT_ATTRIBUTE_TABLE)
        self._lock = threading.Lock()

    def register_context(self, context_id: str, context_type: ContextType) -> None:
        with self._lock:
            self._context_types[context_id] = ContextType(context_type)

    def register_event_type(
        self,
        context_type: ContextType,
        event_type: str,
        defaults: Dict[str, Any],
    ) -> None:
        """Adds (or replaces) the defaults of an event type for one context type."""
        with self._lock:
            self._table.setdefault(ContextType(context_type), {})[event_type] = copy.deepcopy(
                defaults
            )
        logger.info(f"Registered event type {event_type} for {ContextType(context_type).value}")

    def defaults_for_type(self, context_type: ContextType, event_type: str) -> Dict[str, Any]:
        with self._lock:
            defaults = self._table.get(ContextType(context_type), {}).get(event_type, {})
            return copy.deepcopy(defaults)

    def __call__(self, context_id: str, event_type: str) -> Dict[str, Any]:
        context_type = self._context_types.get(context_id)
        if context_type is None:
            return {}
        return self.defaults_for_type(context_type, event_type)
