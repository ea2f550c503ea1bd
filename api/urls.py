# Mounted under /api/ by musify/urls.py
from django.urls import path
from .views import (
    AudioCreateView,
    AudioUpdateView,
    LatestUploadsView,
    RecommendedView,
    FavouriteView,
    IsFavouriteView,
    PlaylistCreateView,
    PlaylistUpdateView,
    PlaylistDeleteView,
    PlaylistByProfileView,
    SinglePlaylistView,
    UpdateFollowerView,
    UploadsView,
    PublicUploadsView,
    PublicProfileView,
    PublicPlaylistView,
    AutoGeneratedPlaylistView,
    FollowersView,
    FollowingsView,
    FollowersOfProfileView,
    PlaylistAudiosView,
    IsFollowingView,
    HistoryView,
    RecentlyPlayedView,
)
from .auth_views import (
    RegisterView,
    VerifyEmailView,
    ReVerifyEmailView,
    SignInView,
    RefreshTokenView,
    LogoutView,
    ProfileView,
    ForgetPasswordView,
    VerifyPasswordResetTokenView,
    UpdatePasswordView,
)

urlpatterns = [
    # --- Authentication ---
    path('auth/register/', RegisterView.as_view(), name='auth_register'),
    path('auth/verify/', VerifyEmailView.as_view(), name='auth_verify'),
    path('auth/re-verify/', ReVerifyEmailView.as_view(), name='auth_re_verify'),
    path('auth/sign-in/', SignInView.as_view(), name='auth_sign_in'),
    path('auth/token/refresh/', RefreshTokenView.as_view(), name='auth_token_refresh'),
    path('auth/log-out/', LogoutView.as_view(), name='auth_log_out'),
    path('auth/profile/', ProfileView.as_view(), name='auth_profile'),
    path('auth/forget-password/', ForgetPasswordView.as_view(), name='auth_forget_password'),
    path('auth/verify-pass-reset-token/', VerifyPasswordResetTokenView.as_view(), name='auth_verify_pass_reset_token'),
    path('auth/update-password/', UpdatePasswordView.as_view(), name='auth_update_password'),

    # --- Audio ---
    path('audio/create/', AudioCreateView.as_view(), name='audio_create'),
    path('audio/latest/', LatestUploadsView.as_view(), name='audio_latest'),
    path('audio/recommended/', RecommendedView.as_view(), name='audio_recommended'),
    path('audio/<int:audio_id>/', AudioUpdateView.as_view(), name='audio_update'),

    # --- Favourites ---
    path('favourite/', FavouriteView.as_view(), name='favourite'),
    path('favourite/is-fav/', IsFavouriteView.as_view(), name='favourite_is_fav'),

    # --- Playlists ---
    path('playlist/', PlaylistDeleteView.as_view(), name='playlist_delete'),
    path('playlist/create/', PlaylistCreateView.as_view(), name='playlist_create'),
    path('playlist/update/', PlaylistUpdateView.as_view(), name='playlist_update'),
    path('playlist/by-profile/', PlaylistByProfileView.as_view(), name='playlist_by_profile'),
    path('playlist/<int:playlist_id>/', SinglePlaylistView.as_view(), name='playlist_detail'),

    # --- Profile ---
    path('profile/update-follower/<int:profile_id>/', UpdateFollowerView.as_view(), name='profile_update_follower'),
    path('profile/uploads/', UploadsView.as_view(), name='profile_uploads'),
    path('profile/uploads/<int:profile_id>/', PublicUploadsView.as_view(), name='profile_public_uploads'),
    path('profile/info/<int:profile_id>/', PublicProfileView.as_view(), name='profile_info'),
    path('profile/playlist/<int:profile_id>/', PublicPlaylistView.as_view(), name='profile_public_playlist'),
    path('profile/auto-generated-playlist/', AutoGeneratedPlaylistView.as_view(), name='profile_auto_generated_playlist'),
    path('profile/followers/', FollowersView.as_view(), name='profile_followers'),
    path('profile/followings/', FollowingsView.as_view(), name='profile_followings'),
    path('profile/followers/<int:profile_id>/', FollowersOfProfileView.as_view(), name='profile_followers_of'),
    path('profile/playlist-audios/<int:playlist_id>/', PlaylistAudiosView.as_view(), name='profile_playlist_audios'),
    path('profile/is-following/<int:profile_id>/', IsFollowingView.as_view(), name='profile_is_following'),

    # --- History ---
    path('history/', HistoryView.as_view(), name='history'),
    path('history/recently-played/', RecentlyPlayedView.as_view(), name='history_recently_played'),
]
