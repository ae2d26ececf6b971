"""
Signature Library

A user's reusable signature images, either drawn on the canvas (sent as a
PNG data URL) or uploaded as an image file. Each user has at most one
default signature; the first one created becomes the default.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db, Signature
from services.bucket_provisioner import ensure_buckets
from services.exceptions import SignatureNotFound, SignDeskError, ValidationError
from services.storage_outbox import delete_or_defer
from services.supabase_storage import (
    generate_storage_path,
    get_public_url,
    get_signed_url,
    upload_file,
)

logger = logging.getLogger(__name__)

DEFAULT_SIGNATURE_NAME = 'My Signature'

# Content type -> file extension
ALLOWED_IMAGE_TYPES = {
    'image/png': 'png',
    'image/jpeg': 'jpg',
    'image/gif': 'gif',
    'image/webp': 'webp',
}

DATA_URL_PATTERN = re.compile(r'^data:(?P<type>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$', re.DOTALL)


@dataclass
class SignatureImage:
    """Raw image bytes plus what we know about them."""
    data: bytes
    content_type: str
    filename: Optional[str] = None

    @classmethod
    def from_data_url(cls, data_url: str) -> 'SignatureImage':
        """Decode a canvas export such as 'data:image/png;base64,iVBOR...'."""
        match = DATA_URL_PATTERN.match((data_url or '').strip())
        if not match:
            raise ValidationError('Please draw your signature first', field='signature')
        try:
            data = base64.b64decode(match.group('data'), validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError('Signature image data is corrupt', field='signature')
        return cls(data=data, content_type=match.group('type').lower())

    @classmethod
    def from_upload(cls, data: bytes, content_type: str, filename: str = None) -> 'SignatureImage':
        content_type = (content_type or '').split(';', 1)[0].strip().lower()
        return cls(data=data, content_type=content_type, filename=filename)


def validate_image(image: SignatureImage) -> None:
    if image.content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError('Please upload an image file (PNG, JPEG, GIF or WebP)', field='file')

    if not image.data:
        raise ValidationError('The signature image is empty', field='file')

    max_size = current_app.config['SIGNATURES_MAX_BYTES']
    if len(image.data) > max_size:
        raise ValidationError(
            f'Image too large. Maximum size is {max_size // (1024 * 1024)}MB.',
            field='file'
        )


def _get_owned(user_id: str, signature_id: str) -> Signature:
    signature = db.session.get(Signature, signature_id)
    if signature is None or signature.user_id != user_id:
        raise SignatureNotFound(signature_id)
    return signature


def _clear_defaults(user_id: str) -> None:
    Signature.query.filter_by(user_id=user_id, is_default=True).update(
        {'is_default': False}, synchronize_session='fetch'
    )


def create(user_id: str, name: str, image: SignatureImage, make_default: bool = False) -> Signature:
    """
    Store a signature image and its row.

    Validation happens before any network call. The user's first
    signature is always the default.
    """
    validate_image(image)
    name = (name or '').strip() or DEFAULT_SIGNATURE_NAME

    ensure_buckets()

    bucket = current_app.config['SIGNATURES_BUCKET']
    storage_path = generate_storage_path(
        bucket, user_id, image.filename, ext=ALLOWED_IMAGE_TYPES[image.content_type]
    )
    upload_file(bucket, storage_path, image.data, image.content_type)

    try:
        is_first = Signature.query.filter_by(user_id=user_id).count() == 0
        is_default = is_first or bool(make_default)
        if is_default and not is_first:
            _clear_defaults(user_id)

        signature = Signature(
            user_id=user_id,
            name=name,
            file_path=storage_path,
            is_default=is_default,
        )
        db.session.add(signature)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Signature row insert failed for {storage_path}: {e}")
        delete_or_defer(bucket, storage_path)
        raise SignDeskError(f'Could not save signature: {e}') from e

    logger.info(f"Saved signature {signature.id} for user {user_id} (default={signature.is_default})")
    return signature


def set_default(user_id: str, signature_id: str) -> None:
    """Make one signature the user's default, clearing the others in the same transaction."""
    signature = _get_owned(user_id, signature_id)
    try:
        _clear_defaults(user_id)
        signature.is_default = True
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise SignDeskError(f'Could not update default signature: {e}') from e


def delete(user_id: str, signature_id: str) -> None:
    """
    Delete the row, then the image.

    A failed image delete is logged and queued for the reconcile job; the
    caller still sees success. When the default is deleted the newest
    remaining signature takes over.
    """
    signature = _get_owned(user_id, signature_id)
    file_path = signature.file_path
    was_default = signature.is_default

    try:
        db.session.delete(signature)
        db.session.flush()
        if was_default:
            replacement = Signature.query.filter_by(user_id=user_id).order_by(
                Signature.created_at.desc()
            ).first()
            if replacement is not None:
                replacement.is_default = True
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise SignDeskError(f'Could not delete signature: {e}') from e

    if not delete_or_defer(current_app.config['SIGNATURES_BUCKET'], file_path):
        logger.warning(f"Signature {signature_id} deleted but its image {file_path} is still stored")


def get_display_url(signature: Signature) -> str:
    """Public URL or signed URL, depending on how the signatures bucket is configured."""
    config = current_app.config
    if config['SIGNATURES_BUCKET_PUBLIC']:
        return get_public_url(config['SIGNATURES_BUCKET'], signature.file_path)
    return get_signed_url(config['SIGNATURES_BUCKET'], signature.file_path, config['SIGNATURE_URL_TTL'])


def get_for_user(user_id: str, signature_id: str) -> Signature:
    return _get_owned(user_id, signature_id)


def list_for_user(user_id: str) -> list:
    """Default first, then newest first."""
    return Signature.query.filter_by(user_id=user_id).order_by(
        Signature.is_default.desc(), Signature.created_at.desc()
    ).all()
