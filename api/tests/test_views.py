import json
from datetime import timedelta
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from api.models import AutoGeneratedPlaylist, Favorite, Follow, Playlist, PlayEvent, Track
from api.services import history
from api.services.materializer import materialize_discovery_feed, materialize_personal_mix

from .helpers import make_track, make_user


class AudioViewTests(APITestCase):
    def setUp(self):
        self.user = make_user()
        self.client.force_authenticate(user=self.user)

    @mock.patch('api.views.get_audio_duration', return_value=184)
    @mock.patch('api.views.upload_file')
    def test_create_uploads_files_and_stores_track(self, upload, _duration):
        upload.side_effect = [
            ('https://cdn.test/audios/song.mp3', 'audios/song.mp3'),
            ('https://cdn.test/posters/cover.png', 'posters/cover.png'),
        ]

        response = self.client.post(
            '/api/audio/create/',
            data={
                'title': 'Song',
                'about': 'A song',
                'category': 'Music',
                'file': SimpleUploadedFile('song.mp3', b'ID3', content_type='audio/mpeg'),
                'poster': SimpleUploadedFile('cover.png', b'\x89PNG', content_type='image/png'),
            },
            format='multipart',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        track = Track.objects.get()
        self.assertEqual(track.owner, self.user)
        self.assertEqual(track.audio_storage_id, 'audios/song.mp3')
        self.assertEqual(track.duration_seconds, 184)
        self.assertEqual(response.data['audio']['poster'], 'https://cdn.test/posters/cover.png')
        self.assertEqual(response.data['audio']['owner'], {'id': self.user.id, 'name': self.user.name})

    def test_create_requires_verified_account(self):
        self.user.is_verified = False
        self.user.save()

        response = self.client.post('/api/audio/create/', data={}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_rejects_unknown_category(self):
        response = self.client.post(
            '/api/audio/create/',
            data={
                'title': 'Song',
                'about': 'A song',
                'category': 'Polka',
                'file': SimpleUploadedFile('song.mp3', b'ID3', content_type='audio/mpeg'),
            },
            format='multipart',
        )

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertIn('category', response.data)

    def test_update_is_owner_only(self):
        other = make_user(email='other@musify.test')
        track = make_track(other, 'Theirs')

        response = self.client.patch(f'/api/audio/{track.id}/', data={'title': 'Mine now'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_metadata(self):
        track = make_track(self.user, 'Draft', Track.CATEGORY_OTHERS)

        response = self.client.patch(
            f'/api/audio/{track.id}/',
            data={'title': 'Final', 'category': 'Tech'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        track.refresh_from_db()
        self.assertEqual((track.title, track.category), ('Final', 'Tech'))

    def test_latest_lists_ten_newest(self):
        for i in range(12):
            make_track(self.user, f'T{i}')
        self.client.force_authenticate(user=None)

        response = self.client.get('/api/audio/latest/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['audios']), 10)
        self.assertEqual(response.data['audios'][0]['title'], 'T11')

    def test_recommended_for_anonymous_caller(self):
        make_track(self.user, 'Low', likes=1)
        make_track(self.user, 'High', likes=7)
        self.client.force_authenticate(user=None)

        response = self.client.get('/api/audio/recommended/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([a['title'] for a in response.data['audios']], ['High', 'Low'])
        self.assertNotIn('email', response.data['audios'][0]['owner'])

    def test_recommended_follows_recent_categories(self):
        science = make_track(self.user, 'Atoms', Track.CATEGORY_SCIENCE)
        make_track(self.user, 'Hit', Track.CATEGORY_MUSIC, likes=100)
        history.record_play(self.user, science, 1.0)

        response = self.client.get('/api/audio/recommended/')

        self.assertEqual([a['title'] for a in response.data['audios']], ['Atoms'])


class FavouriteViewTests(APITestCase):
    def setUp(self):
        self.user = make_user()
        self.track = make_track(make_user(email='artist@musify.test', name='Artist'), 'Fav')
        self.client.force_authenticate(user=self.user)

    def test_toggle(self):
        added = self.client.post(f'/api/favourite/?audioId={self.track.id}')
        self.assertEqual(added.data, {'status': 'added'})
        self.track.refresh_from_db()
        self.assertEqual(self.track.likes_count, 1)

        removed = self.client.post(f'/api/favourite/?audioId={self.track.id}')
        self.assertEqual(removed.data, {'status': 'removed'})
        self.assertFalse(Favorite.objects.exists())

    def test_malformed_and_missing_ids(self):
        malformed = self.client.post('/api/favourite/?audioId=abc')
        missing = self.client.post('/api/favourite/?audioId=999999')

        self.assertEqual(malformed.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(missing.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_and_is_fav(self):
        Favorite.objects.create(user=self.user, track=self.track)

        listing = self.client.get('/api/favourite/?limit=5')
        is_fav = self.client.get(f'/api/favourite/is-fav/?audioId={self.track.id}')

        self.assertEqual([a['id'] for a in listing.data['audios']], [self.track.id])
        self.assertEqual(listing.data['limit'], 5)
        self.assertEqual(is_fav.data, {'result': True})

    def test_unverified_users_are_rejected(self):
        self.user.is_verified = False
        self.user.save()

        response = self.client.get('/api/favourite/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class PlaylistViewTests(APITestCase):
    def setUp(self):
        self.user = make_user()
        self.artist = make_user(email='artist@musify.test', name='Artist')
        self.track = make_track(self.artist, 'Song')
        self.client.force_authenticate(user=self.user)

    def test_create_with_first_track(self):
        response = self.client.post(
            '/api/playlist/create/',
            data={'title': 'Road', 'audioId': self.track.id, 'visibility': 'private'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        playlist = Playlist.objects.get(pk=response.data['playlist']['id'])
        self.assertEqual(list(playlist.tracks.all()), [self.track])

    def test_create_rejects_auto_visibility(self):
        response = self.client.post(
            '/api/playlist/create/',
            data={'title': 'Sneaky', 'visibility': 'auto'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)

    def test_update_appends_item(self):
        playlist = Playlist.objects.create(owner=self.user, title='Road')

        response = self.client.patch(
            '/api/playlist/update/',
            data={'id': playlist.id, 'title': 'Road Trip', 'item': self.track.id, 'visibility': 'private'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        playlist.refresh_from_db()
        self.assertEqual((playlist.title, playlist.visibility), ('Road Trip', 'private'))
        self.assertEqual(list(playlist.tracks.all()), [self.track])

    def test_update_cannot_touch_auto_playlists(self):
        mix = Playlist.objects.create(owner=self.user, title='Mix 20', visibility=Playlist.VISIBILITY_AUTO)

        response = self.client.patch(
            '/api/playlist/update/',
            data={'id': mix.id, 'title': 'Renamed', 'visibility': 'public'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_cannot_touch_auto_playlists(self):
        history.record_play(self.user, self.track, 1.0)
        mix = materialize_personal_mix(self.user)

        removed = self.client.delete(f'/api/playlist/?playlistId={mix.id}&audioId={self.track.id}')
        deleted = self.client.delete(f'/api/playlist/?playlistId={mix.id}&all=yes')

        self.assertEqual(removed.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(deleted.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(list(mix.tracks.all()), [self.track])

    def test_remove_item_then_whole_playlist(self):
        playlist = Playlist.objects.create(owner=self.user, title='Road')
        playlist.add_track(self.track)

        removed = self.client.delete(f'/api/playlist/?playlistId={playlist.id}&audioId={self.track.id}')
        self.assertEqual(removed.status_code, status.HTTP_200_OK)
        self.assertFalse(playlist.items.exists())

        deleted = self.client.delete(f'/api/playlist/?playlistId={playlist.id}&all=yes')
        self.assertEqual(deleted.status_code, status.HTTP_200_OK)
        self.assertFalse(Playlist.objects.filter(pk=playlist.id).exists())

    def test_delete_with_malformed_id(self):
        response = self.client.delete('/api/playlist/?playlistId=xyz&all=yes')

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)

    def test_by_profile_hides_auto_playlists(self):
        Playlist.objects.create(owner=self.user, title='Road')
        Playlist.objects.create(owner=self.user, title='Mix 20', visibility=Playlist.VISIBILITY_AUTO)

        response = self.client.get('/api/playlist/by-profile/')

        self.assertEqual([p['title'] for p in response.data['playlist']], ['Road'])

    def test_single_playlist_lists_tracks_in_order(self):
        second = make_track(self.artist, 'Second')
        playlist = Playlist.objects.create(owner=self.user, title='Road')
        playlist.add_track(second)
        playlist.add_track(self.track)

        response = self.client.get(f'/api/playlist/{playlist.id}/')

        self.assertEqual([a['id'] for a in response.data['list']['audios']], [second.id, self.track.id])

    def test_single_playlist_of_someone_else(self):
        playlist = Playlist.objects.create(owner=self.artist, title='Theirs')

        response = self.client.get(f'/api/playlist/{playlist.id}/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class ProfileViewTests(APITestCase):
    def setUp(self):
        self.user = make_user()
        self.artist = make_user(email='artist@musify.test', name='Artist')
        self.client.force_authenticate(user=self.user)

    def test_follow_toggle_and_is_following(self):
        followed = self.client.post(f'/api/profile/update-follower/{self.artist.id}/')
        self.assertEqual(followed.data, {'status': 'follow'})
        self.assertEqual(self.client.get(f'/api/profile/is-following/{self.artist.id}/').data, {'status': True})

        unfollowed = self.client.post(f'/api/profile/update-follower/{self.artist.id}/')
        self.assertEqual(unfollowed.data, {'status': 'unfollow'})
        self.assertFalse(Follow.objects.exists())

    def test_cannot_follow_self(self):
        response = self.client.post(f'/api/profile/update-follower/{self.user.id}/')

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)

    def test_follow_unknown_profile(self):
        response = self.client.post('/api/profile/update-follower/999999/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_followers_and_followings(self):
        Follow.objects.create(follower=self.artist, followed=self.user)
        Follow.objects.create(follower=self.user, followed=self.artist)

        followers = self.client.get('/api/profile/followers/')
        followings = self.client.get('/api/profile/followings/')
        artist_followers = self.client.get(f'/api/profile/followers/{self.artist.id}/')

        self.assertEqual([f['id'] for f in followers.data['followers']], [self.artist.id])
        self.assertEqual([f['id'] for f in followings.data['followings']], [self.artist.id])
        self.assertEqual([f['id'] for f in artist_followers.data['followers']], [self.user.id])

    def test_public_profile_and_uploads(self):
        make_track(self.artist, 'Public')
        Follow.objects.create(follower=self.user, followed=self.artist)
        self.client.force_authenticate(user=None)

        info = self.client.get(f'/api/profile/info/{self.artist.id}/')
        uploads = self.client.get(f'/api/profile/uploads/{self.artist.id}/')

        self.assertEqual(info.data['profile']['followers'], 1)
        self.assertNotIn('email', info.data['profile'])
        self.assertEqual([a['title'] for a in uploads.data['audios']], ['Public'])

    def test_own_uploads(self):
        make_track(self.user, 'Mine')
        make_track(self.artist, 'Theirs')

        response = self.client.get('/api/profile/uploads/')

        self.assertEqual([a['title'] for a in response.data['audios']], ['Mine'])

    def test_public_playlists_only(self):
        Playlist.objects.create(owner=self.artist, title='Open')
        Playlist.objects.create(owner=self.artist, title='Closed', visibility=Playlist.VISIBILITY_PRIVATE)
        Playlist.objects.create(owner=self.artist, title='Mix 20', visibility=Playlist.VISIBILITY_AUTO)

        response = self.client.get(f'/api/profile/playlist/{self.artist.id}/')

        self.assertEqual([p['title'] for p in response.data['playlist']], ['Open'])

    def test_auto_generated_playlist_refreshes_the_mix(self):
        track = make_track(self.artist, 'Atoms', Track.CATEGORY_SCIENCE)
        science = AutoGeneratedPlaylist.objects.create(title=Track.CATEGORY_SCIENCE)
        science.tracks.add(track)
        AutoGeneratedPlaylist.objects.create(title=Track.CATEGORY_ARTS)
        history.record_play(self.user, track, 1.0)

        response = self.client.get('/api/profile/auto-generated-playlist/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        feed = response.data['playlist']
        self.assertEqual(feed[0], {'id': science.id, 'title': 'Science', 'itemsCount': 1, 'kind': 'category'})
        mix = Playlist.objects.get(owner=self.user, visibility=Playlist.VISIBILITY_AUTO)
        self.assertEqual(feed[-1], {'id': mix.id, 'title': 'Mix 20', 'itemsCount': 1, 'kind': 'mix'})

    def test_playlist_audios(self):
        track = make_track(self.artist, 'Song')
        open_playlist = Playlist.objects.create(owner=self.artist, title='Open')
        open_playlist.add_track(track)
        closed = Playlist.objects.create(owner=self.artist, title='Closed', visibility=Playlist.VISIBILITY_PRIVATE)

        response = self.client.get(f'/api/profile/playlist-audios/{open_playlist.id}/')
        hidden = self.client.get(f'/api/profile/playlist-audios/{closed.id}/')

        self.assertEqual(response.data['list']['title'], 'Open')
        self.assertEqual([a['id'] for a in response.data['list']['audios']], [track.id])
        self.assertEqual(hidden.status_code, status.HTTP_404_NOT_FOUND)

    def test_category_playlist_ids_do_not_collide_with_user_playlists(self):
        theirs = make_track(self.artist, 'Theirs')
        public = Playlist.objects.create(owner=self.artist, title='Someone public')
        public.add_track(theirs)
        track = make_track(self.artist, 'Song', Track.CATEGORY_TECH)
        tech = AutoGeneratedPlaylist.objects.create(pk=public.pk, title=Track.CATEGORY_TECH)
        tech.tracks.add(track)

        entry = materialize_discovery_feed(self.user)[0]
        category = self.client.get(f"/api/profile/playlist-audios/{entry['id']}/?kind={entry['kind']}")
        plain = self.client.get(f'/api/profile/playlist-audios/{public.id}/')

        self.assertEqual(entry['id'], public.id)
        self.assertEqual(category.data['list']['title'], 'Tech')
        self.assertEqual([a['id'] for a in category.data['list']['audios']], [track.id])
        self.assertEqual(plain.data['list']['title'], 'Someone public')
        self.assertEqual([a['id'] for a in plain.data['list']['audios']], [theirs.id])

    def test_unknown_category_playlist(self):
        response = self.client.get('/api/profile/playlist-audios/999999/?kind=category')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class HistoryViewTests(APITestCase):
    def setUp(self):
        self.user = make_user()
        self.track = make_track(make_user(email='artist@musify.test', name='Artist'), 'Loop')
        self.client.force_authenticate(user=self.user)

    def test_record_play(self):
        response = self.client.post(
            '/api/history/',
            data={'audio': self.track.id, 'progress': 0.4, 'date': '2026-01-02T10:00:00Z'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        event = PlayEvent.objects.get()
        self.assertEqual((event.track_id, event.progress), (self.track.id, 0.4))
        self.assertEqual(event.played_at.year, 2026)

    def test_record_play_validation(self):
        out_of_range = self.client.post('/api/history/', data={'audio': self.track.id, 'progress': 1.5}, format='json')
        missing = self.client.post('/api/history/', data={'audio': 999999, 'progress': 0.5}, format='json')

        self.assertEqual(out_of_range.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(missing.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(PlayEvent.objects.exists())

    def test_grouped_listing(self):
        base = timezone.now().replace(hour=12, minute=0)
        history.record_play(self.user, self.track, 1.0, played_at=base)
        history.record_play(self.user, self.track, 0.5, played_at=base - timedelta(days=1))

        response = self.client.get('/api/history/')

        self.assertEqual(len(response.data['histories']), 2)
        self.assertEqual(response.data['histories'][0]['audios'][0]['audioId'], self.track.id)

    def test_remove_selected_and_all(self):
        first = history.record_play(self.user, self.track, 1.0)
        second = history.record_play(self.user, self.track, 0.5)
        history.record_play(self.user, self.track, 0.1)

        selected = self.client.delete(f'/api/history/?histories={json.dumps([first.id, second.id], separators=(",", ":"))}')
        self.assertEqual(selected.status_code, status.HTTP_200_OK)
        self.assertEqual(PlayEvent.objects.count(), 1)

        cleared = self.client.delete('/api/history/?all=yes')
        self.assertEqual(cleared.status_code, status.HTTP_200_OK)
        self.assertFalse(PlayEvent.objects.exists())

    def test_remove_with_malformed_ids(self):
        response = self.client.delete('/api/history/?histories=[oops]')

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)

    def test_recently_played(self):
        history.record_play(self.user, self.track, 0.7)

        response = self.client.get('/api/history/recently-played/')

        self.assertEqual(response.data['audios'][0]['id'], self.track.id)
        self.assertEqual(response.data['audios'][0]['progress'], 0.7)
