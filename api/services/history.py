"""Append-only play history of a user."""
import logging
from collections import OrderedDict

from django.utils import timezone

from ..models import PlayEvent

logger = logging.getLogger(__name__)


def record_play(user, track, progress, played_at=None):
    """Append a play of `track` to the user's history."""
    event = PlayEvent.objects.create(
        user=user,
        track=track,
        progress=progress,
        played_at=played_at or timezone.now(),
    )
    logger.debug("Recorded play of track %s for user %s", track.pk, user.pk)
    return event


def clear_history(user):
    deleted, _ = PlayEvent.objects.filter(user=user).delete()
    logger.info("Cleared %s history entries for user %s", deleted, user.pk)
    return deleted


def remove_history_entries(user, entry_ids):
    """Remove the given entries, limited to the ones owned by `user`."""
    deleted, _ = PlayEvent.objects.filter(user=user, pk__in=list(entry_ids)).delete()
    return deleted


def history_for(user):
    return PlayEvent.objects.filter(user=user).select_related('track').order_by('-played_at', '-id')


def recently_played(user, limit=10):
    return list(
        PlayEvent.objects.filter(user=user, track__isnull=False)
        .select_related('track', 'track__owner')
        .order_by('-played_at', '-id')[:limit]
    )


def played_track_ids(user):
    """Distinct ids of existing tracks the user has ever played."""
    return set(
        PlayEvent.objects.filter(user=user, track__isnull=False)
        .order_by()
        .values_list('track_id', flat=True)
        .distinct()
    )


def grouped_history(events):
    """Group a page of events by calendar day, newest day first."""
    days = OrderedDict()
    for event in events:
        day = timezone.localdate(event.played_at)
        days.setdefault(day, []).append(event)
    return [{'date': day, 'events': day_events} for day, day_events in days.items()]
