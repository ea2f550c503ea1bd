"""
System-materialized playlists.

Every writer here touches only auto records: the per-user mix playlist
(visibility 'auto') and the global category playlists. Re-running any of them
overwrites the previous output for the same key.
"""
import logging

from django.conf import settings
from django.db import transaction

from ..models import AutoGeneratedPlaylist, Playlist, Track
from .affinity import resolve_preferred_categories
from .history import played_track_ids
from .sampling import sample_ids

logger = logging.getLogger(__name__)


def mix_title():
    return getattr(settings, 'PERSONAL_MIX_TITLE', 'Mix 20')


def get_personal_mix(user):
    return Playlist.objects.filter(owner=user, title=mix_title(), visibility=Playlist.VISIBILITY_AUTO).first()


def materialize_personal_mix(user):
    """
    Resample the user's mix from everything they ever played.
    With no plays the previous mix (if any) is left untouched and returned.
    """
    played = played_track_ids(user)
    if not played:
        logger.debug("User %s has no plays, keeping existing mix", user.pk)
        return get_personal_mix(user)

    track_ids = sample_ids(sorted(played), getattr(settings, 'PERSONAL_MIX_SIZE', 20))
    with transaction.atomic():
        playlist, created = Playlist.objects.update_or_create(
            owner=user,
            title=mix_title(),
            visibility=Playlist.VISIBILITY_AUTO,
        )
        playlist.replace_tracks(track_ids)
    logger.info("%s mix for user %s with %s tracks", 'Created' if created else 'Refreshed', user.pk, len(track_ids))
    return playlist


KIND_CATEGORY = 'category'
KIND_MIX = 'mix'


def playlist_summary(playlist, kind):
    if playlist is None:
        return {'id': None, 'title': None, 'itemsCount': None, 'kind': kind}
    return {
        'id': playlist.pk,
        'title': playlist.title,
        'itemsCount': playlist.tracks.count(),
        'kind': kind,
    }


def materialize_discovery_feed(user):
    """
    Up to four category playlists matching the user's recent categories
    (any category without a signal), followed by the user's own mix.
    Category entries are opened with `?kind=category` on playlist-audios,
    their ids are not user playlist ids.
    """
    categories = resolve_preferred_categories(user)
    candidates = AutoGeneratedPlaylist.objects.all()
    if categories:
        candidates = candidates.filter(title__in=categories)

    sampled_ids = sample_ids(
        list(candidates.values_list('pk', flat=True)),
        getattr(settings, 'DISCOVERY_PLAYLIST_SAMPLE', 4),
    )
    by_id = AutoGeneratedPlaylist.objects.in_bulk(sampled_ids)
    feed = [playlist_summary(by_id[pk], KIND_CATEGORY) for pk in sampled_ids if pk in by_id]

    feed.append(playlist_summary(get_personal_mix(user), KIND_MIX))
    return feed


def materialize_category_playlists(size=None):
    """
    Rebuild the global playlist of every category that has tracks.
    Playlists of categories left without tracks are removed.
    """
    if size is None:
        size = getattr(settings, 'AUTO_PLAYLIST_SIZE', 20)

    refreshed = []
    for category, _label in Track.CATEGORY_CHOICES:
        track_ids = list(Track.objects.filter(category=category).values_list('pk', flat=True))
        if not track_ids:
            deleted, _ = AutoGeneratedPlaylist.objects.filter(title=category).delete()
            if deleted:
                logger.info("Removed empty %s category playlist", category)
            continue
        with transaction.atomic():
            playlist, _ = AutoGeneratedPlaylist.objects.get_or_create(title=category)
            playlist.tracks.set(sample_ids(track_ids, size))
        refreshed.append(playlist)
    logger.info("Refreshed %s category playlists", len(refreshed))
    return refreshed
