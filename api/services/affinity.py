from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from ..models import PlayEvent


def resolve_preferred_categories(user):
    """
    Categories of the tracks `user` played inside the recency window.

    The window is evaluated at call time. Plays whose track no longer exists
    are skipped. An empty set means there is no personalization signal.
    """
    window = timedelta(days=getattr(settings, 'AFFINITY_WINDOW_DAYS', 30))
    cutoff = timezone.now() - window
    categories = (
        PlayEvent.objects.filter(user=user, played_at__gte=cutoff, track__isnull=False)
        .order_by()
        .values_list('track__category', flat=True)
        .distinct()
    )
    return set(categories)
