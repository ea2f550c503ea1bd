from django.contrib import admin
from django.contrib.auth import get_user_model
from .models import (
    Follow, Track, Favorite, PlayEvent, Playlist, PlaylistItem, AutoGeneratedPlaylist,
    EmailVerificationToken, PasswordResetToken,
)
from .services.materializer import materialize_category_playlists

User = get_user_model()


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('id', 'email', 'name', 'is_verified', 'is_staff', 'is_active', 'date_joined')
    list_filter = ('is_verified', 'is_staff', 'is_active')
    search_fields = ('email', 'name')
    readonly_fields = ('date_joined', 'last_login')
    exclude = ('password',)


@admin.register(Follow)
class FollowAdmin(admin.ModelAdmin):
    list_display = ('id', 'follower', 'followed', 'created_at')
    list_filter = ('created_at',)
    search_fields = ('follower__email', 'followed__email')
    readonly_fields = ('created_at',)
    autocomplete_fields = ['follower', 'followed']


@admin.register(Track)
class TrackAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'category', 'owner', 'likes_count', 'duration_seconds', 'created_at')
    list_filter = ('category', 'created_at')
    date_hierarchy = 'created_at'
    search_fields = ('title', 'description', 'owner__email', 'owner__name')
    readonly_fields = ('likes_count', 'created_at', 'updated_at')
    autocomplete_fields = ['owner']

    fieldsets = (
        ('Basic Information', {
            'fields': ('title', 'description', 'category', 'owner')
        }),
        ('Files & Media', {
            'fields': ('audio_file', 'audio_storage_id', 'cover_image', 'cover_storage_id', 'duration_seconds')
        }),
        ('Engagement', {
            'fields': ('likes_count',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(Favorite)
class FavoriteAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'track', 'created_at')
    list_filter = ('created_at',)
    search_fields = ('user__email', 'track__title')
    readonly_fields = ('created_at',)


@admin.register(PlayEvent)
class PlayEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'track', 'progress', 'played_at')
    list_filter = ('played_at',)
    date_hierarchy = 'played_at'
    search_fields = ('user__email', 'track__title')
    readonly_fields = ('created_at',)


class PlaylistItemInline(admin.TabularInline):
    model = PlaylistItem
    extra = 0
    autocomplete_fields = ['track']
    readonly_fields = ('added_at',)


@admin.register(Playlist)
class PlaylistAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'owner', 'visibility', 'items_count', 'created_at')
    list_filter = ('visibility', 'created_at')
    search_fields = ('title', 'owner__email')
    readonly_fields = ('created_at', 'updated_at')
    autocomplete_fields = ['owner']
    inlines = [PlaylistItemInline]

    def items_count(self, obj):
        return obj.items.count()
    items_count.short_description = 'Items'


@admin.register(AutoGeneratedPlaylist)
class AutoGeneratedPlaylistAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'tracks_count', 'updated_at')
    readonly_fields = ('updated_at',)
    filter_horizontal = ('tracks',)
    actions = ['regenerate_all']

    def tracks_count(self, obj):
        return obj.tracks.count()
    tracks_count.short_description = 'Tracks'

    def regenerate_all(self, request, queryset):
        """Resample every category playlist, regardless of the selection"""
        refreshed = materialize_category_playlists()
        self.message_user(request, f'{len(refreshed)} category playlist(s) regenerated.')
    regenerate_all.short_description = 'Regenerate all category playlists'


@admin.register(EmailVerificationToken, PasswordResetToken)
class OwnerTokenAdmin(admin.ModelAdmin):
    list_display = ('id', 'owner', 'created_at')
    search_fields = ('owner__email',)
    readonly_fields = ('owner', 'token_hash', 'created_at')
