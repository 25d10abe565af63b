import logging
from typing import List

from fastapi import APIRouter, Depends

from ..config import ClusteringConfig
from ..deps import get_attribute_policy, get_repository
from ..errors import TimelineError
from ..models import TimelineContext, TimelineEvent
from ..overrides import EventRepository
from ..policies import DefaultAttributePolicy
from ..schemas import ClusterRequest
from .errors import to_http_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{context_id}/cluster", response_model=List[TimelineEvent])
def cluster_context(
    context_id: str,
    request: ClusterRequest,
    repository: EventRepository = Depends(get_repository),
    attribute_policy: DefaultAttributePolicy = Depends(get_attribute_policy),
):
    """Cluster an import batch into the context and return the events it produced."""
    context = TimelineContext(
        id=context_id, owner_id=request.owner_id, context_type=request.context_type
    )
    config = request.config or ClusteringConfig.from_settings(request.context_type)
    attribute_policy.register_context(context_id, request.context_type)

    try:
        events = repository.cluster_context(
            context, request.photos, config, attribute_policy=attribute_policy
        )
    except TimelineError as e:
        logger.warning(f"Clustering failed for context {context_id}: {e}")
        raise to_http_error(e) from e

    return events


@router.get("/{context_id}/events", response_model=List[TimelineEvent])
def list_events(
    context_id: str,
    repository: EventRepository = Depends(get_repository),
):
    """List a context's events in timeline order."""
    return repository.events_for_context(context_id)
