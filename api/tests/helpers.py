from api.models import User, Track


def make_user(email='listener@musify.test', name='Listener', verified=True, password='Secret@123'):
    user = User.objects.create_user(email=email, password=password, name=name)
    if verified:
        user.is_verified = True
        user.save(update_fields=['is_verified'])
    return user


def make_track(owner, title='Track', category=Track.CATEGORY_MUSIC, likes=0, **extra):
    extra.setdefault('description', f'About {title}')
    extra.setdefault('audio_file', f'https://cdn.test/audios/{title}.mp3')
    extra.setdefault('audio_storage_id', f'audios/{title}.mp3')
    return Track.objects.create(
        title=title,
        category=category,
        owner=owner,
        likes_count=likes,
        **extra,
    )
