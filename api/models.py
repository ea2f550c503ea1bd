from django.db import models
from django.contrib.auth.models import (
    AbstractBaseUser,
    BaseUserManager,
    PermissionsMixin,
)
from django.contrib.auth.hashers import make_password, check_password
from django.core.validators import MinValueValidator, MaxValueValidator
from django.conf import settings
from django.utils import timezone


class UserManager(BaseUserManager):
    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('The email must be set')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_verified', True)
        return self.create_user(email, password=password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=150)
    # Email verification flag
    is_verified = models.BooleanField(default=False)
    avatar = models.URLField(max_length=500, blank=True, help_text="CDN URL for avatar image")
    avatar_storage_id = models.CharField(max_length=500, blank=True)
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(auto_now_add=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    def __str__(self):
        return self.email


class Follow(models.Model):
    """Directed follow edge between two users"""
    follower = models.ForeignKey(User, on_delete=models.CASCADE, related_name='following_relations')
    followed = models.ForeignKey(User, on_delete=models.CASCADE, related_name='follower_relations')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['follower', 'followed'], name='unique_user_follow_user'),
        ]

    def __str__(self):
        return f"{self.follower} follows {self.followed}"


class Track(models.Model):
    """Uploaded audio track with metadata and media references"""

    CATEGORY_ARTS = 'Arts'
    CATEGORY_BUSINESS = 'Business'
    CATEGORY_EDUCATION = 'Education'
    CATEGORY_ENTERTAINMENT = 'Entertainment'
    CATEGORY_KIDS = 'Kids & Family'
    CATEGORY_MUSIC = 'Music'
    CATEGORY_SCIENCE = 'Science'
    CATEGORY_TECH = 'Tech'
    CATEGORY_OTHERS = 'Others'

    CATEGORY_CHOICES = [
        (CATEGORY_ARTS, 'Arts'),
        (CATEGORY_BUSINESS, 'Business'),
        (CATEGORY_EDUCATION, 'Education'),
        (CATEGORY_ENTERTAINMENT, 'Entertainment'),
        (CATEGORY_KIDS, 'Kids & Family'),
        (CATEGORY_MUSIC, 'Music'),
        (CATEGORY_SCIENCE, 'Science'),
        (CATEGORY_TECH, 'Tech'),
        (CATEGORY_OTHERS, 'Others'),
    ]

    title = models.CharField(max_length=400)
    description = models.TextField()
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES, default=CATEGORY_OTHERS)
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='tracks')

    # Files (CDN URLs + storage keys)
    audio_file = models.URLField(max_length=500, help_text="CDN URL for audio file")
    audio_storage_id = models.CharField(max_length=500)
    cover_image = models.URLField(max_length=500, blank=True, help_text="CDN URL for cover image")
    cover_storage_id = models.CharField(max_length=500, blank=True)
    duration_seconds = models.PositiveIntegerField(null=True, blank=True)

    # Denormalized count of Favorite rows, kept in sync by signals
    likes_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['category', '-likes_count'], name='api_track_categor_5b1c2d_idx'),
            models.Index(fields=['owner', '-created_at'], name='api_track_owner_i_8e0f3a_idx'),
        ]

    def __str__(self):
        return f"{self.title} ({self.category})"


class Favorite(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='favorites')
    track = models.ForeignKey(Track, on_delete=models.CASCADE, related_name='favorites')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('user', 'track')
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user} likes {self.track_id}"


class PlayEvent(models.Model):
    """One recorded play of a track. Rows are appended or deleted, never updated."""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='history')
    # A removed track leaves the event in place with a null reference
    track = models.ForeignKey(Track, on_delete=models.SET_NULL, null=True, blank=True, related_name='play_events')
    progress = models.FloatField(validators=[MinValueValidator(0.0), MaxValueValidator(1.0)])
    played_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-played_at', '-id']
        indexes = [
            models.Index(fields=['user', '-played_at'], name='api_playeve_user_id_4d9a71_idx'),
        ]

    def __str__(self):
        return f"PlayEvent(user={self.user_id}, track={self.track_id}, progress={self.progress})"


class Playlist(models.Model):
    """User playlist; 'auto' marks system-materialized playlists"""
    VISIBILITY_PUBLIC = 'public'
    VISIBILITY_PRIVATE = 'private'
    VISIBILITY_AUTO = 'auto'

    VISIBILITY_CHOICES = [
        (VISIBILITY_PUBLIC, 'Public'),
        (VISIBILITY_PRIVATE, 'Private'),
        (VISIBILITY_AUTO, 'Auto'),
    ]

    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='playlists')
    title = models.CharField(max_length=255)
    visibility = models.CharField(max_length=20, choices=VISIBILITY_CHOICES, default=VISIBILITY_PUBLIC)
    tracks = models.ManyToManyField(Track, through='PlaylistItem', blank=True, related_name='playlists')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} by {self.owner}"

    def ordered_tracks(self):
        """Tracks in insertion order."""
        return Track.objects.filter(playlist_items__playlist=self).select_related('owner').order_by('playlist_items__id')

    def add_track(self, track):
        # ignore_conflicts keeps the first insertion (and its position)
        PlaylistItem.objects.bulk_create(
            [PlaylistItem(playlist=self, track=track)],
            ignore_conflicts=True,
        )

    def replace_tracks(self, track_ids):
        PlaylistItem.objects.filter(playlist=self).delete()
        PlaylistItem.objects.bulk_create(
            [PlaylistItem(playlist=self, track_id=track_id) for track_id in track_ids],
            ignore_conflicts=True,
        )


class PlaylistItem(models.Model):
    playlist = models.ForeignKey(Playlist, on_delete=models.CASCADE, related_name='items')
    track = models.ForeignKey(Track, on_delete=models.CASCADE, related_name='playlist_items')
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('playlist', 'track')
        ordering = ['id']


class AutoGeneratedPlaylist(models.Model):
    """Global category playlist, keyed by category name and recomputed out-of-band"""
    title = models.CharField(max_length=30, unique=True, choices=Track.CATEGORY_CHOICES)
    tracks = models.ManyToManyField(Track, blank=True, related_name='auto_playlists')
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['title']

    def __str__(self):
        return self.title


class OwnerTokenBase(models.Model):
    """Hashed one-shot token bound to a user"""
    owner = models.ForeignKey(User, on_delete=models.CASCADE)
    token_hash = models.CharField(max_length=255)
    created_at = models.DateTimeField(default=timezone.now)

    TTL_SETTING = None

    class Meta:
        abstract = True

    def set_token(self, raw_token):
        self.token_hash = make_password(raw_token)

    def compare_token(self, raw_token):
        return check_password(raw_token, self.token_hash)

    @property
    def is_expired(self):
        ttl = getattr(settings, self.TTL_SETTING)
        return self.created_at + ttl < timezone.now()


class EmailVerificationToken(OwnerTokenBase):
    TTL_SETTING = 'EMAIL_VERIFICATION_TOKEN_TTL'

    def __str__(self):
        return f"EmailVerificationToken(user={self.owner_id})"


class PasswordResetToken(OwnerTokenBase):
    TTL_SETTING = 'PASSWORD_RESET_TOKEN_TTL'

    def __str__(self):
        return f"PasswordResetToken(user={self.owner_id})"
