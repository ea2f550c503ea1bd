from datetime import timedelta
from unittest import mock

from botocore.exceptions import ClientError
from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import RefreshToken

from api.auth_views import issue_verification_token
from api.models import EmailVerificationToken, PasswordResetToken, User

from .helpers import make_user


class RegistrationTests(APITestCase):
    def test_register_creates_unverified_user_and_mails_otp(self):
        with mock.patch('api.auth_views.generate_otp', return_value='482913'):
            response = self.client.post(
                '/api/auth/register/',
                data={'name': 'New Listener', 'email': 'new@musify.test', 'password': 'Secret@123'},
                format='json',
            )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(email='new@musify.test')
        self.assertFalse(user.is_verified)
        self.assertEqual(response.data['user']['id'], user.id)
        self.assertEqual(EmailVerificationToken.objects.filter(owner=user).count(), 1)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('482913', mail.outbox[0].body)

    def test_register_rejects_taken_email_and_weak_password(self):
        make_user(email='taken@musify.test')
        response = self.client.post(
            '/api/auth/register/',
            data={'name': 'Someone', 'email': 'taken@musify.test', 'password': 'weak'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertIn('email', response.data)
        self.assertIn('password', response.data)


class EmailVerificationTests(APITestCase):
    def setUp(self):
        self.user = make_user(verified=False)
        with mock.patch('api.auth_views.generate_otp', return_value='111222'):
            issue_verification_token(self.user)

    def test_verify_with_valid_token(self):
        response = self.client.post(
            '/api/auth/verify/',
            data={'token': '111222', 'userId': self.user.id},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.is_verified)
        self.assertFalse(EmailVerificationToken.objects.filter(owner=self.user).exists())

    def test_verify_with_wrong_token(self):
        response = self.client.post(
            '/api/auth/verify/',
            data={'token': '000000', 'userId': self.user.id},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.user.refresh_from_db()
        self.assertFalse(self.user.is_verified)

    def test_verify_with_expired_token(self):
        EmailVerificationToken.objects.filter(owner=self.user).update(created_at=timezone.now() - timedelta(hours=2))
        response = self.client.post(
            '/api/auth/verify/',
            data={'token': '111222', 'userId': self.user.id},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_verify_with_malformed_user_id(self):
        response = self.client.post(
            '/api/auth/verify/',
            data={'token': '111222', 'userId': 'abc'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)

    def test_re_verify_replaces_the_token(self):
        mail.outbox = []
        response = self.client.post('/api/auth/re-verify/', data={'userId': self.user.id}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(EmailVerificationToken.objects.filter(owner=self.user).count(), 1)
        self.assertEqual(len(mail.outbox), 1)

    def test_re_verify_verified_account(self):
        self.user.is_verified = True
        self.user.save()
        response = self.client.post('/api/auth/re-verify/', data={'userId': self.user.id}, format='json')

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)


class SignInTests(APITestCase):
    def setUp(self):
        self.user = make_user(email='signin@musify.test', password='Secret@123')

    def test_sign_in_returns_tokens_and_profile(self):
        response = self.client.post(
            '/api/auth/sign-in/',
            data={'email': 'signin@musify.test', 'password': 'Secret@123'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['profile']['email'], 'signin@musify.test')
        self.assertTrue(response.data['profile']['verified'])

    def test_sign_in_with_wrong_password(self):
        response = self.client.post(
            '/api/auth/sign-in/',
            data={'email': 'signin@musify.test', 'password': 'Wrong@123'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_log_out_blacklists_refresh_token(self):
        refresh = RefreshToken.for_user(self.user)
        self.client.force_authenticate(user=self.user)

        response = self.client.post('/api/auth/log-out/', data={'refresh': str(refresh)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.client.force_authenticate(user=None)
        response = self.client.post('/api/auth/token/refresh/', data={'refresh': str(refresh)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ProfileTests(APITestCase):
    def setUp(self):
        self.user = make_user(name='Old Name')
        self.client.force_authenticate(user=self.user)

    def test_get_profile(self):
        response = self.client.get('/api/auth/profile/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['profile']['name'], 'Old Name')
        self.assertEqual(response.data['profile']['followers'], 0)

    def test_profile_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get('/api/auth/profile/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    @mock.patch('api.auth_views.delete_file')
    @mock.patch('api.auth_views.upload_file', return_value=('https://cdn.test/avatars/me.png', 'avatars/me.png'))
    def test_update_name_and_avatar(self, upload, delete):
        self.user.avatar_storage_id = 'avatars/old.png'
        self.user.save()

        response = self.client.patch(
            '/api/auth/profile/',
            data={'name': 'New Name', 'avatar': SimpleUploadedFile('me.png', b'\x89PNG', content_type='image/png')},
            format='multipart',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['profile']['avatar'], 'https://cdn.test/avatars/me.png')
        upload.assert_called_once()
        delete.assert_called_once_with('avatars/old.png')
        self.user.refresh_from_db()
        self.assertEqual(self.user.name, 'New Name')
        self.assertEqual(self.user.avatar_storage_id, 'avatars/me.png')

    @mock.patch('api.auth_views.delete_file')
    @mock.patch('api.auth_views.upload_file')
    def test_avatar_storage_failure(self, upload, delete):
        upload.side_effect = ClientError({'Error': {'Code': 'InternalError', 'Message': 'down'}}, 'PutObject')

        response = self.client.patch(
            '/api/auth/profile/',
            data={'name': 'New Name', 'avatar': SimpleUploadedFile('me.png', b'\x89PNG', content_type='image/png')},
            format='multipart',
        )

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'error': 'Could not store the uploaded file'})
        delete.assert_not_called()
        self.user.refresh_from_db()
        self.assertEqual(self.user.name, 'Old Name')


class PasswordResetTests(APITestCase):
    def setUp(self):
        self.user = make_user(email='forgot@musify.test', password='Secret@123')

    def request_reset(self):
        with mock.patch('api.auth_views.get_random_string', return_value='reset-token-value'):
            return self.client.post('/api/auth/forget-password/', data={'email': 'forgot@musify.test'}, format='json')

    def test_forget_password_mails_a_link(self):
        response = self.request_reset()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(PasswordResetToken.objects.filter(owner=self.user).count(), 1)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(f'token=reset-token-value&amp;userId={self.user.id}', mail.outbox[0].alternatives[0][0])

    def test_forget_password_unknown_email(self):
        response = self.client.post('/api/auth/forget-password/', data={'email': 'nobody@musify.test'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_verify_reset_token(self):
        self.request_reset()

        ok = self.client.post(
            '/api/auth/verify-pass-reset-token/',
            data={'token': 'reset-token-value', 'userId': self.user.id},
            format='json',
        )
        bad = self.client.post(
            '/api/auth/verify-pass-reset-token/',
            data={'token': 'guess', 'userId': self.user.id},
            format='json',
        )

        self.assertEqual(ok.status_code, status.HTTP_200_OK)
        self.assertEqual(bad.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_password(self):
        self.request_reset()
        mail.outbox = []

        same = self.client.post(
            '/api/auth/update-password/',
            data={'token': 'reset-token-value', 'userId': self.user.id, 'password': 'Secret@123'},
            format='json',
        )
        self.assertEqual(same.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)

        response = self.client.post(
            '/api/auth/update-password/',
            data={'token': 'reset-token-value', 'userId': self.user.id, 'password': 'Fresh@456'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('Fresh@456'))
        self.assertFalse(PasswordResetToken.objects.filter(owner=self.user).exists())
        self.assertEqual(len(mail.outbox), 1)
