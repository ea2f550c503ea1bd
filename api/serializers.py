import re

from rest_framework import serializers
from django.contrib.auth import get_user_model
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from .models import User, Track, Playlist, PlayEvent

STRONG_PASSWORD_RE = re.compile(r'^(?=.*[a-zA-Z])(?=.*\d)(?=.*[!@#$%^&*])[a-zA-Z\d!@#$%^&*]+$')
AUDIO_EXTENSIONS = ['.mp3', '.wav']
IMAGE_EXTENSIONS = ['.jpg', '.jpeg', '.png', '.webp']


def _validate_extension(value, allowed):
    name = (value.name or '').lower()
    ext = name[name.rfind('.'):] if '.' in name else ''
    if ext not in allowed:
        raise serializers.ValidationError(f"Only {', '.join(allowed)} files are allowed")
    return value


def _validate_strong_password(value):
    value = value.strip()
    if len(value) < 8:
        raise serializers.ValidationError('Password is too short')
    if not STRONG_PASSWORD_RE.match(value):
        raise serializers.ValidationError('Use a strong password')
    return value


# --- Users & profiles ---
class UserProfileSerializer(serializers.ModelSerializer):
    """Profile of the signed-in user"""
    verified = serializers.BooleanField(source='is_verified', read_only=True)
    avatar = serializers.SerializerMethodField()
    followers = serializers.SerializerMethodField()
    followings = serializers.SerializerMethodField()

    class Meta:
        model = get_user_model()
        fields = ['id', 'name', 'email', 'verified', 'avatar', 'followers', 'followings']
        read_only_fields = fields

    def get_avatar(self, obj):
        return obj.avatar or None

    def get_followers(self, obj):
        return obj.follower_relations.count()

    def get_followings(self, obj):
        return obj.following_relations.count()


class PublicProfileSerializer(serializers.ModelSerializer):
    followers = serializers.SerializerMethodField()
    avatar = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'name', 'followers', 'avatar']
        read_only_fields = fields

    def get_followers(self, obj):
        return obj.follower_relations.count()

    def get_avatar(self, obj):
        return obj.avatar or None


class UserSummarySerializer(serializers.ModelSerializer):
    avatar = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'name', 'avatar']
        read_only_fields = fields

    def get_avatar(self, obj):
        return obj.avatar or None


class OwnerSummarySerializer(serializers.ModelSerializer):
    """Minimal owner info exposed next to a track: no email, no credentials"""
    class Meta:
        model = User
        fields = ['id', 'name']
        read_only_fields = fields


class ProfileUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=3, max_length=20)
    avatar = serializers.FileField(required=False, allow_null=True)

    def validate_name(self, value):
        return value.strip()

    def validate_avatar(self, value):
        if value:
            _validate_extension(value, IMAGE_EXTENSIONS)
        return value


# --- Auth related serializers ---
class RegisterSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=3, max_length=20)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate_name(self, value):
        return value.strip()

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('Email is already in use')
        return value

    def validate_password(self, value):
        return _validate_strong_password(value)

    def create(self, validated_data):
        return User.objects.create_user(
            email=validated_data['email'],
            password=validated_data['password'],
            name=validated_data['name'],
        )


class TokenAndUserSerializer(serializers.Serializer):
    token = serializers.CharField(trim_whitespace=True)
    userId = serializers.IntegerField(min_value=1, error_messages={'invalid': 'Invalid userId!'})


class UserIdSerializer(serializers.Serializer):
    userId = serializers.IntegerField(min_value=1, error_messages={'invalid': 'Invalid userId!'})


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()


class PasswordUpdateSerializer(TokenAndUserSerializer):
    password = serializers.CharField(write_only=True)

    def validate_password(self, value):
        return _validate_strong_password(value)


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField()


class SignInSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        # attach the profile to the token response
        data['profile'] = UserProfileSerializer(self.user).data
        return data


# --- Tracks ---
class TrackSerializer(serializers.ModelSerializer):
    """Public projection of a track"""
    file = serializers.URLField(source='audio_file', read_only=True)
    poster = serializers.SerializerMethodField()
    owner = OwnerSummarySerializer(read_only=True)

    class Meta:
        model = Track
        fields = [
            'id', 'title', 'description', 'category', 'file', 'poster',
            'duration_seconds', 'likes_count', 'owner', 'created_at',
        ]
        read_only_fields = fields

    def get_poster(self, obj):
        return obj.cover_image or None


class TrackUploadSerializer(serializers.Serializer):
    """Multipart payload for uploading a track"""
    file = serializers.FileField(help_text="Audio file (mp3 or wav)")
    poster = serializers.FileField(required=False, allow_null=True, help_text="Cover image")
    title = serializers.CharField(max_length=400)
    about = serializers.CharField()
    category = serializers.ChoiceField(choices=Track.CATEGORY_CHOICES, error_messages={'invalid_choice': 'Invalid categories'})

    def validate_file(self, value):
        return _validate_extension(value, AUDIO_EXTENSIONS)

    def validate_poster(self, value):
        if value:
            _validate_extension(value, IMAGE_EXTENSIONS)
        return value


class TrackUpdateSerializer(serializers.Serializer):
    poster = serializers.FileField(required=False, allow_null=True)
    title = serializers.CharField(max_length=400, required=False)
    about = serializers.CharField(required=False)
    category = serializers.ChoiceField(choices=Track.CATEGORY_CHOICES, required=False, error_messages={'invalid_choice': 'Invalid categories'})

    def validate_poster(self, value):
        if value:
            _validate_extension(value, IMAGE_EXTENSIONS)
        return value


class AudioReferenceSerializer(serializers.Serializer):
    audioId = serializers.IntegerField(min_value=1, error_messages={'invalid': 'Invalid audio id!'})


# --- Playlists ---
VISIBILITY_INPUT_CHOICES = [Playlist.VISIBILITY_PUBLIC, Playlist.VISIBILITY_PRIVATE]


class PlaylistCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    audioId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    visibility = serializers.ChoiceField(
        choices=VISIBILITY_INPUT_CHOICES,
        error_messages={'invalid_choice': 'Visibility must be public or private'},
    )


class PlaylistUpdateSerializer(serializers.Serializer):
    id = serializers.IntegerField(min_value=1)
    title = serializers.CharField(max_length=255)
    item = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    visibility = serializers.ChoiceField(
        choices=VISIBILITY_INPUT_CHOICES,
        error_messages={'invalid_choice': 'Visibility must be public or private'},
    )


class PlaylistDeleteSerializer(serializers.Serializer):
    playlistId = serializers.IntegerField(min_value=1, error_messages={'invalid': 'Invalid Playlist id!'})
    audioId = serializers.IntegerField(min_value=1, required=False, error_messages={'invalid': 'Invalid Audio Id'})
    all = serializers.CharField(required=False)


class PlaylistSummarySerializer(serializers.ModelSerializer):
    itemsCount = serializers.SerializerMethodField()

    class Meta:
        model = Playlist
        fields = ['id', 'title', 'itemsCount', 'visibility']
        read_only_fields = fields

    def get_itemsCount(self, obj):
        return obj.items.count()


# --- History ---
class PlayEventCreateSerializer(serializers.Serializer):
    audio = serializers.IntegerField(min_value=1, error_messages={'invalid': 'Audio is required!'})
    progress = serializers.FloatField(min_value=0.0, max_value=1.0)
    date = serializers.DateTimeField(required=False, error_messages={'invalid': 'Invalid Date!'})


class HistoryEntrySerializer(serializers.ModelSerializer):
    audioId = serializers.IntegerField(source='track_id', read_only=True)
    title = serializers.SerializerMethodField()
    date = serializers.DateTimeField(source='played_at', read_only=True)

    class Meta:
        model = PlayEvent
        fields = ['id', 'audioId', 'title', 'date', 'progress']
        read_only_fields = fields

    def get_title(self, obj):
        return obj.track.title if obj.track else None


class RecentlyPlayedSerializer(TrackSerializer):
    """Track projection of a history entry with its playback progress"""
    def to_representation(self, event):
        data = super().to_representation(event.track)
        data['progress'] = event.progress
        data['date'] = serializers.DateTimeField().to_representation(event.played_at)
        return data


class HistoryDeleteSerializer(serializers.Serializer):
    histories = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        error_messages={'not_a_list': 'Invalid histories!'},
    )
