import json
import logging

from botocore.exceptions import ClientError
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import (
    User, Track, Favorite, Follow, Playlist, PlaylistItem, AutoGeneratedPlaylist,
)
from .pagination import LimitPageNoPagination
from .permissions import IsVerified
from .serializers import (
    TrackSerializer,
    TrackUploadSerializer,
    TrackUpdateSerializer,
    AudioReferenceSerializer,
    PlaylistCreateSerializer,
    PlaylistUpdateSerializer,
    PlaylistDeleteSerializer,
    PlaylistSummarySerializer,
    PublicProfileSerializer,
    UserSummarySerializer,
    PlayEventCreateSerializer,
    HistoryEntrySerializer,
    HistoryDeleteSerializer,
    RecentlyPlayedSerializer,
)
from .services import history, social
from .services.composer import compose_feed
from .services.materializer import KIND_CATEGORY, materialize_personal_mix, materialize_discovery_feed
from .utils import upload_file, delete_file, get_audio_duration

logger = logging.getLogger(__name__)

LATEST_UPLOADS_LIMIT = 10


def first_error(errors):
    if isinstance(errors, dict):
        return first_error(next(iter(errors.values())))
    if isinstance(errors, list):
        return first_error(errors[0])
    return str(errors)


def invalid_reference(serializer):
    """422 response carrying the first validation message of `serializer`."""
    return Response({'error': first_error(serializer.errors)}, status=status.HTTP_422_UNPROCESSABLE_ENTITY)


def playlist_info(playlist):
    return {'id': playlist.id, 'title': playlist.title, 'visibility': playlist.visibility}


# --- Audio ---
class AudioCreateView(APIView):
    """
    Upload a track with its metadata.
    The audio file goes to object storage under audios/, the optional poster under posters/.
    """
    permission_classes = [IsVerified]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        serializer = TrackUploadSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        data = serializer.validated_data

        audio = data['file']
        poster = data.get('poster')
        try:
            audio_url, audio_key = upload_file(audio, folder='audios')
            cover_url, cover_key = upload_file(poster, folder='posters') if poster else ('', '')
        except ClientError:
            return Response({'error': 'Could not store the uploaded file'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        track = Track.objects.create(
            title=data['title'],
            description=data['about'],
            category=data['category'],
            owner=request.user,
            audio_file=audio_url,
            audio_storage_id=audio_key,
            cover_image=cover_url,
            cover_storage_id=cover_key,
            duration_seconds=get_audio_duration(audio),
        )
        logger.info("User %s uploaded track %s", request.user.pk, track.pk)
        return Response({'audio': TrackSerializer(track).data}, status=status.HTTP_201_CREATED)


class AudioUpdateView(APIView):
    """Owner-only metadata and poster update"""
    permission_classes = [IsVerified]
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def patch(self, request, audio_id):
        serializer = TrackUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        data = serializer.validated_data

        track = Track.objects.filter(pk=audio_id, owner=request.user).select_related('owner').first()
        if not track:
            return Response({'error': 'Record not found'}, status=status.HTTP_404_NOT_FOUND)

        if 'title' in data:
            track.title = data['title']
        if 'about' in data:
            track.description = data['about']
        if 'category' in data:
            track.category = data['category']

        poster = data.get('poster')
        if poster:
            old_cover_key = track.cover_storage_id
            try:
                track.cover_image, track.cover_storage_id = upload_file(poster, folder='posters')
            except ClientError:
                return Response({'error': 'Could not store the uploaded file'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
            delete_file(old_cover_key)

        track.save()
        return Response({'audio': TrackSerializer(track).data})


class LatestUploadsView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        tracks = Track.objects.select_related('owner').order_by('-created_at', '-id')[:LATEST_UPLOADS_LIMIT]
        return Response({'audios': TrackSerializer(tracks, many=True).data})


class RecommendedView(APIView):
    """Most liked tracks, narrowed to the caller's recent categories when signed in"""
    permission_classes = [AllowAny]

    def get(self, request):
        user = request.user if request.user.is_authenticated else None
        return Response({'audios': TrackSerializer(compose_feed(user), many=True).data})


# --- Favourites ---
class FavouriteView(APIView):
    permission_classes = [IsVerified]

    def post(self, request):
        serializer = AudioReferenceSerializer(data=request.query_params)
        if not serializer.is_valid():
            return invalid_reference(serializer)
        track = Track.objects.filter(pk=serializer.validated_data['audioId']).first()
        if not track:
            return Response({'error': 'Resource not found!'}, status=status.HTTP_404_NOT_FOUND)

        result = social.toggle_favorite(request.user, track)
        return Response({'status': result})

    def get(self, request):
        qs = Favorite.objects.filter(user=request.user).select_related('track__owner').order_by('-created_at')
        paginator = LimitPageNoPagination()
        page = paginator.paginate_queryset(qs, request)
        data = TrackSerializer([favorite.track for favorite in page], many=True).data
        return paginator.get_paginated_response(data, key='audios')


class IsFavouriteView(APIView):
    permission_classes = [IsVerified]

    def get(self, request):
        serializer = AudioReferenceSerializer(data=request.query_params)
        if not serializer.is_valid():
            return invalid_reference(serializer)
        result = social.is_favorite(request.user, serializer.validated_data['audioId'])
        return Response({'result': result})


# --- Playlists ---
class PlaylistCreateView(APIView):
    permission_classes = [IsVerified]

    def post(self, request):
        serializer = PlaylistCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        data = serializer.validated_data

        track = None
        if data.get('audioId'):
            track = Track.objects.filter(pk=data['audioId']).first()
            if not track:
                return Response({'error': 'Could not find the audio'}, status=status.HTTP_404_NOT_FOUND)

        playlist = Playlist.objects.create(owner=request.user, title=data['title'], visibility=data['visibility'])
        if track:
            playlist.add_track(track)
        return Response({'playlist': playlist_info(playlist)}, status=status.HTTP_201_CREATED)


class PlaylistUpdateView(APIView):
    """Rename, change visibility and optionally append one track"""
    permission_classes = [IsAuthenticated]

    def patch(self, request):
        serializer = PlaylistUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        data = serializer.validated_data

        playlist = (
            Playlist.objects.filter(pk=data['id'], owner=request.user)
            .exclude(visibility=Playlist.VISIBILITY_AUTO)
            .first()
        )
        if not playlist:
            return Response({'error': 'Playlist not found'}, status=status.HTTP_404_NOT_FOUND)

        track = None
        if data.get('item'):
            track = Track.objects.filter(pk=data['item']).first()
            if not track:
                return Response({'error': 'Audio not found'}, status=status.HTTP_404_NOT_FOUND)

        playlist.title = data['title']
        playlist.visibility = data['visibility']
        playlist.save(update_fields=['title', 'visibility', 'updated_at'])
        if track:
            playlist.add_track(track)
        return Response({'playlist': playlist_info(playlist)})


class PlaylistDeleteView(APIView):
    """
    DELETE ?playlistId=<id>&all=yes removes the whole playlist,
    DELETE ?playlistId=<id>&audioId=<id> removes a single track from it.
    """
    permission_classes = [IsAuthenticated]

    def delete(self, request):
        serializer = PlaylistDeleteSerializer(data=request.query_params)
        if not serializer.is_valid():
            return invalid_reference(serializer)
        data = serializer.validated_data

        playlist = (
            Playlist.objects.filter(pk=data['playlistId'], owner=request.user)
            .exclude(visibility=Playlist.VISIBILITY_AUTO)
            .first()
        )
        if data.get('all') == 'yes':
            if not playlist:
                return Response({'error': 'Playlist not found'}, status=status.HTTP_404_NOT_FOUND)
            playlist.delete()
            return Response({'success': True})

        if not data.get('audioId'):
            return Response({'error': 'Invalid Audio Id'}, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        if not playlist:
            return Response({'error': 'Playlist not found'}, status=status.HTTP_404_NOT_FOUND)
        deleted, _ = PlaylistItem.objects.filter(playlist=playlist, track_id=data['audioId']).delete()
        if not deleted:
            return Response({'error': 'Audio not found!'}, status=status.HTTP_404_NOT_FOUND)
        return Response({'success': True})


class PlaylistByProfileView(APIView):
    """Playlists created by the signed-in user, auto playlists excluded"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        qs = (
            Playlist.objects.filter(owner=request.user)
            .exclude(visibility=Playlist.VISIBILITY_AUTO)
            .order_by('-created_at', '-id')
        )
        paginator = LimitPageNoPagination()
        page = paginator.paginate_queryset(qs, request)
        return paginator.get_paginated_response(PlaylistSummarySerializer(page, many=True).data, key='playlist')


class SinglePlaylistView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, playlist_id):
        playlist = Playlist.objects.filter(pk=playlist_id, owner=request.user).first()
        if not playlist:
            return Response({'error': 'Playlist not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response({
            'list': {
                'id': playlist.id,
                'title': playlist.title,
                'audios': TrackSerializer(playlist.ordered_tracks(), many=True).data,
            }
        })


# --- Profile ---
class UpdateFollowerView(APIView):
    """Follow or unfollow another user"""
    permission_classes = [IsAuthenticated]

    def post(self, request, profile_id):
        target = User.objects.filter(pk=profile_id).first()
        if not target:
            return Response({'error': 'User not found!'}, status=status.HTTP_404_NOT_FOUND)
        try:
            result = social.toggle_follow(request.user, target)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        return Response({'status': result})


class UploadsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        qs = Track.objects.filter(owner=request.user).select_related('owner').order_by('-created_at', '-id')
        paginator = LimitPageNoPagination()
        page = paginator.paginate_queryset(qs, request)
        return paginator.get_paginated_response(TrackSerializer(page, many=True).data, key='audios')


class PublicUploadsView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, profile_id):
        owner = get_object_or_404(User, pk=profile_id)
        qs = Track.objects.filter(owner=owner).select_related('owner').order_by('-created_at', '-id')
        paginator = LimitPageNoPagination()
        page = paginator.paginate_queryset(qs, request)
        return paginator.get_paginated_response(TrackSerializer(page, many=True).data, key='audios')


class PublicProfileView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, profile_id):
        user = User.objects.filter(pk=profile_id).first()
        if not user:
            return Response({'error': 'User not found!'}, status=status.HTTP_404_NOT_FOUND)
        return Response({'profile': PublicProfileSerializer(user).data})


class PublicPlaylistView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, profile_id):
        qs = Playlist.objects.filter(owner_id=profile_id, visibility=Playlist.VISIBILITY_PUBLIC).order_by('-created_at', '-id')
        paginator = LimitPageNoPagination()
        page = paginator.paginate_queryset(qs, request)
        return paginator.get_paginated_response(PlaylistSummarySerializer(page, many=True).data, key='playlist')


class AutoGeneratedPlaylistView(APIView):
    """
    Refresh the caller's personal mix, then return up to four category playlists
    matching their recent listening followed by the mix itself.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        materialize_personal_mix(request.user)
        return Response({'playlist': materialize_discovery_feed(request.user)})


class FollowersView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return followers_response(request, request.user)


class FollowersOfProfileView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, profile_id):
        profile = User.objects.filter(pk=profile_id).first()
        if not profile:
            return Response({'error': 'User not found!'}, status=status.HTTP_404_NOT_FOUND)
        return followers_response(request, profile)


def followers_response(request, user):
    qs = Follow.objects.filter(followed=user).select_related('follower').order_by('-created_at')
    paginator = LimitPageNoPagination()
    page = paginator.paginate_queryset(qs, request)
    data = UserSummarySerializer([follow.follower for follow in page], many=True).data
    return paginator.get_paginated_response(data, key='followers')


class FollowingsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        qs = Follow.objects.filter(follower=request.user).select_related('followed').order_by('-created_at')
        paginator = LimitPageNoPagination()
        page = paginator.paginate_queryset(qs, request)
        data = UserSummarySerializer([follow.followed for follow in page], many=True).data
        return paginator.get_paginated_response(data, key='followings')


class PlaylistAudiosView(APIView):
    """
    Tracks of a public or auto playlist.
    With ?kind=category the id refers to a global category playlist instead.
    """
    permission_classes = [AllowAny]

    def get(self, request, playlist_id):
        if request.query_params.get('kind') == KIND_CATEGORY:
            playlist = AutoGeneratedPlaylist.objects.filter(pk=playlist_id).first()
            tracks = playlist.tracks.select_related('owner').order_by('id') if playlist else None
        else:
            playlist = Playlist.objects.filter(pk=playlist_id).exclude(visibility=Playlist.VISIBILITY_PRIVATE).first()
            tracks = playlist.ordered_tracks() if playlist else None
        if not playlist:
            return Response({'error': 'Playlist not found'}, status=status.HTTP_404_NOT_FOUND)

        paginator = LimitPageNoPagination()
        page = paginator.paginate_queryset(tracks, request)
        data = {
            'id': playlist.id,
            'title': playlist.title,
            'audios': TrackSerializer(page, many=True).data,
        }
        return paginator.get_paginated_response(data, key='list')


class IsFollowingView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, profile_id):
        target = User.objects.filter(pk=profile_id).first()
        if not target:
            return Response({'error': 'User not found!'}, status=status.HTTP_404_NOT_FOUND)
        return Response({'status': social.is_following(request.user, target)})


# --- History ---
class HistoryView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = PlayEventCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        data = serializer.validated_data

        track = Track.objects.filter(pk=data['audio']).first()
        if not track:
            return Response({'error': 'Audio not found'}, status=status.HTTP_404_NOT_FOUND)

        history.record_play(request.user, track, data['progress'], played_at=data.get('date'))
        return Response({'success': True}, status=status.HTTP_201_CREATED)

    def delete(self, request):
        if request.query_params.get('all') == 'yes':
            history.clear_history(request.user)
            return Response({'success': True})

        try:
            ids = json.loads(request.query_params.get('histories', '[]'))
        except ValueError:
            return Response({'error': 'Invalid histories!'}, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        serializer = HistoryDeleteSerializer(data={'histories': ids})
        if not serializer.is_valid():
            return invalid_reference(serializer)

        history.remove_history_entries(request.user, serializer.validated_data['histories'])
        return Response({'success': True})

    def get(self, request):
        paginator = LimitPageNoPagination()
        page = paginator.paginate_queryset(history.history_for(request.user), request)
        data = [
            {
                'date': group['date'].isoformat(),
                'audios': HistoryEntrySerializer(group['events'], many=True).data,
            }
            for group in history.grouped_history(page)
        ]
        return paginator.get_paginated_response(data, key='histories')


class RecentlyPlayedView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        events = history.recently_played(request.user)
        return Response({'audios': RecentlyPlayedSerializer(events, many=True).data})
