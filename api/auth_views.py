import logging

from botocore.exceptions import ClientError
from django.conf import settings
from django.shortcuts import get_object_or_404
from django.utils.crypto import get_random_string
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from .mail import send_verification_mail, send_forgot_password_link, send_password_reset_success_email
from .models import User, EmailVerificationToken, PasswordResetToken
from .serializers import (
    RegisterSerializer,
    TokenAndUserSerializer,
    UserIdSerializer,
    ForgotPasswordSerializer,
    PasswordUpdateSerializer,
    LogoutSerializer,
    SignInSerializer,
    UserProfileSerializer,
    ProfileUpdateSerializer,
)
from .utils import upload_file, delete_file

logger = logging.getLogger(__name__)


def generate_otp(length=6):
    # digits only, typed by hand from the mail
    return get_random_string(length=length, allowed_chars='0123456789')


def issue_verification_token(user):
    """Replace any pending verification token of `user` and mail the new one."""
    EmailVerificationToken.objects.filter(owner=user).delete()
    otp = generate_otp()
    token = EmailVerificationToken(owner=user)
    token.set_token(otp)
    token.save()
    send_verification_mail(otp, user)
    return token


def find_valid_token(model, user_id, raw_token):
    """Return the live token row of `model` matching `raw_token`, or None."""
    token = model.objects.filter(owner_id=user_id).order_by('-created_at').first()
    if not token or token.is_expired or not token.compare_token(raw_token):
        return None
    return token


class RegisterView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        user = serializer.save()
        issue_verification_token(user)
        logger.info("Registered user %s", user.pk)
        return Response(
            {'user': {'id': user.id, 'name': user.name, 'email': user.email}},
            status=status.HTTP_201_CREATED,
        )


class VerifyEmailView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = TokenAndUserSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        data = serializer.validated_data
        token = find_valid_token(EmailVerificationToken, data['userId'], data['token'])
        if not token:
            return Response({'error': 'Invalid token!'}, status=status.HTTP_403_FORBIDDEN)

        user = token.owner
        user.is_verified = True
        user.save(update_fields=['is_verified'])
        EmailVerificationToken.objects.filter(owner=user).delete()
        return Response({'message': 'Your email is verified.'})


class ReVerifyEmailView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = UserIdSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        user = get_object_or_404(User, pk=serializer.validated_data['userId'])
        if user.is_verified:
            return Response({'error': 'Your account is already verified!'}, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        issue_verification_token(user)
        return Response({'message': 'Please check your mail.'})


class SignInView(TokenObtainPairView):
    permission_classes = [AllowAny]
    serializer_class = SignInSerializer


class RefreshTokenView(TokenRefreshView):
    # ROTATE_REFRESH_TOKENS + BLACKLIST_AFTER_ROTATION hand out a fresh refresh token each time
    permission_classes = [AllowAny]


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            RefreshToken(serializer.validated_data['refresh']).blacklist()
        except TokenError:
            return Response({'error': 'Invalid refresh token'}, status=status.HTTP_400_BAD_REQUEST)
        return Response({'success': True})


class ProfileView(APIView):
    """Retrieve and update the signed-in user's profile"""
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def get(self, request):
        return Response({'profile': UserProfileSerializer(request.user).data})

    def patch(self, request):
        serializer = ProfileUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        data = serializer.validated_data
        user = request.user
        user.name = data['name']

        avatar = data.get('avatar')
        if avatar:
            old_storage_id = user.avatar_storage_id
            try:
                user.avatar, user.avatar_storage_id = upload_file(avatar, folder='avatars')
            except ClientError:
                return Response({'error': 'Could not store the uploaded file'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
            delete_file(old_storage_id)

        user.save()
        return Response({'profile': UserProfileSerializer(user).data})


class ForgetPasswordView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = ForgotPasswordSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        user = User.objects.filter(email__iexact=serializer.validated_data['email']).first()
        if not user:
            return Response({'error': 'Account not found!'}, status=status.HTTP_404_NOT_FOUND)

        PasswordResetToken.objects.filter(owner=user).delete()
        raw_token = get_random_string(36)
        token = PasswordResetToken(owner=user)
        token.set_token(raw_token)
        token.save()

        link = f"{settings.PASSWORD_RESET_LINK}?token={raw_token}&userId={user.pk}"
        send_forgot_password_link(user.email, link)
        return Response({'message': 'Please check you email.'})


class VerifyPasswordResetTokenView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = TokenAndUserSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        data = serializer.validated_data
        if not find_valid_token(PasswordResetToken, data['userId'], data['token']):
            return Response({'error': 'Unauthorized access, invalid token!'}, status=status.HTTP_403_FORBIDDEN)
        return Response({'valid': True})


class UpdatePasswordView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = PasswordUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        data = serializer.validated_data
        token = find_valid_token(PasswordResetToken, data['userId'], data['token'])
        if not token:
            return Response({'error': 'Unauthorized access, invalid token!'}, status=status.HTTP_403_FORBIDDEN)

        user = token.owner
        if user.check_password(data['password']):
            return Response({'error': 'The new password must be different!'}, status=status.HTTP_422_UNPROCESSABLE_ENTITY)

        user.set_password(data['password'])
        user.save()
        PasswordResetToken.objects.filter(owner=user).delete()
        send_password_reset_success_email(user)
        return Response({'message': 'Password resets successfully.'})
