import os
import re
import uuid
import logging
import mimetypes
from urllib.parse import quote

import boto3
from django.conf import settings
from botocore.config import Config
from botocore.exceptions import ClientError
from mutagen.mp3 import MP3
from mutagen.wave import WAVE

logger = logging.getLogger(__name__)


def make_safe_filename(s: str) -> str:
    """Sanitize a filename base by removing problematic characters and collapsing whitespace."""
    if not s:
        return ''
    allowed = set('abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789 -_.,()')
    cleaned = ''.join(ch for ch in s if ch in allowed)
    cleaned = re.sub(r'\s+', ' ', cleaned).strip()
    return cleaned


def get_storage_client():
    client_kwargs = {
        'service_name': 's3',
        'endpoint_url': getattr(settings, 'STORAGE_ENDPOINT_URL', None),
        'aws_access_key_id': getattr(settings, 'STORAGE_ACCESS_KEY_ID', None),
        'aws_secret_access_key': getattr(settings, 'STORAGE_SECRET_ACCESS_KEY', None),
        'config': Config(signature_version='s3v4'),
    }
    client_kwargs = {k: v for k, v in client_kwargs.items() if v is not None}
    return boto3.client(**client_kwargs)


def build_cdn_url(key):
    cdn_base = getattr(settings, 'STORAGE_CDN_BASE', '').rstrip('/')
    # URL-encode the key but keep slashes safe
    return f"{cdn_base}/{quote(key, safe='/')}"


def upload_file(file_obj, folder=''):
    """
    Upload a file-like object to the media bucket.
    Returns a (cdn_url, storage_id) pair; the storage id is the object key.
    """
    original_filename = getattr(file_obj, 'name', None) or 'upload'
    base, ext = os.path.splitext(os.path.basename(original_filename))
    safe_base = make_safe_filename(base) or 'file'
    # A random prefix keeps keys unique without probing the bucket
    key = f"{folder + '/' if folder else ''}{uuid.uuid4().hex[:12]}-{safe_base}{ext.lower()}"

    content_type, _ = mimetypes.guess_type(original_filename)
    if not content_type:
        content_type = 'application/octet-stream'

    if hasattr(file_obj, 'seek'):
        file_obj.seek(0)

    s3 = get_storage_client()
    try:
        s3.upload_fileobj(
            file_obj,
            getattr(settings, 'STORAGE_BUCKET_NAME'),
            key,
            ExtraArgs={'ContentType': content_type}
        )
    except ClientError:
        logger.exception("Upload of %s to storage failed", key)
        raise

    logger.info("Uploaded %s (%s)", key, content_type)
    return build_cdn_url(key), key


def delete_file(storage_id):
    """Delete an object by storage id. Missing objects are not an error."""
    if not storage_id:
        return
    s3 = get_storage_client()
    try:
        s3.delete_object(Bucket=getattr(settings, 'STORAGE_BUCKET_NAME'), Key=storage_id)
    except ClientError as e:
        code = e.response.get('Error', {}).get('Code', '')
        if code in ('404', 'NoSuchKey', 'NotFound'):
            logger.debug("Storage object %s already gone", storage_id)
            return
        raise


def get_audio_duration(file_obj):
    """
    Extract duration in whole seconds from an mp3 or wav upload.
    Returns None when the format cannot be read.
    """
    for reader in (MP3, WAVE):
        if hasattr(file_obj, 'seek'):
            file_obj.seek(0)
        try:
            audio = reader(file_obj)
            return int(audio.info.length)
        except Exception:
            continue
        finally:
            if hasattr(file_obj, 'seek'):
                file_obj.seek(0)
    return None
