import logging

from django.conf import settings
from django.db import DatabaseError

from ..models import Track
from .affinity import resolve_preferred_categories

logger = logging.getLogger(__name__)


def _preferred_categories_or_empty(user):
    # personalization is best-effort; a failed lookup falls back to the generic pool
    try:
        return resolve_preferred_categories(user)
    except DatabaseError:
        logger.warning("Affinity lookup failed for user %s, serving generic feed", user.pk, exc_info=True)
        return set()


def candidate_pool(user=None):
    """Tracks eligible for the feed of `user` (None for anonymous callers)."""
    queryset = Track.objects.select_related('owner')
    if user is None or not user.is_authenticated:
        return queryset

    categories = _preferred_categories_or_empty(user)
    if categories:
        return queryset.filter(category__in=categories)
    return queryset


def compose_feed(user=None):
    """
    Most liked tracks for the caller, restricted to their recent categories
    when there is a signal. Ties keep catalog order.
    """
    limit = getattr(settings, 'RECOMMENDED_TRACKS_LIMIT', 10)
    return list(candidate_pool(user).order_by('-likes_count', 'id')[:limit])
