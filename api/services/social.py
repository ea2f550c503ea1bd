"""
Follow and favourite toggles.

Both are a membership check followed by an insert or delete, not a single
transaction; concurrent toggles by the same actor converge eventually.
"""
from ..models import Favorite, Follow

FOLLOWED = 'follow'
UNFOLLOWED = 'unfollow'
FAVORITE_ADDED = 'added'
FAVORITE_REMOVED = 'removed'


def toggle_follow(follower, target):
    if follower.pk == target.pk:
        raise ValueError("You can't follow your own account!")

    follow_qs = Follow.objects.filter(follower=follower, followed=target)
    if follow_qs.exists():
        follow_qs.delete()
        return UNFOLLOWED
    Follow.objects.get_or_create(follower=follower, followed=target)
    return FOLLOWED


def is_following(follower, target):
    return Follow.objects.filter(follower=follower, followed=target).exists()


def toggle_favorite(user, track):
    """Add or remove `track` from the user's favourites; the like count follows via signals."""
    favorite_qs = Favorite.objects.filter(user=user, track=track)
    if favorite_qs.exists():
        favorite_qs.delete()
        return FAVORITE_REMOVED
    Favorite.objects.get_or_create(user=user, track=track)
    return FAVORITE_ADDED


def is_favorite(user, track):
    return Favorite.objects.filter(user=user, track=track).exists()
