"""
Document Store

CRUD over document rows and their backing PDF blobs in the documents
bucket. A document row is written only after its blob is uploaded; if the
row cannot be written the blob is deleted again (or queued for deletion
in the storage outbox).
"""

import logging

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db, Document, FormField, User
from services.auth_bridge import invite_signer
from services.bucket_provisioner import ensure_buckets
from services.exceptions import (
    DocumentNotFound,
    InvalidTransitionError,
    SignDeskError,
    ValidationError,
)
from services.storage_outbox import delete_or_defer
from services.supabase_storage import generate_storage_path, get_signed_url, upload_file

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = 'application/pdf'


def default_document_name(filename: str) -> str:
    """'Lease Agreement.pdf' -> 'Lease Agreement'"""
    name = (filename or '').rsplit('/', 1)[-1]
    if name.lower().endswith('.pdf'):
        name = name[:-4]
    return name.strip()


def validate_pdf(file_data: bytes, content_type: str) -> None:
    """Reject anything that is not a non-empty PDF within the bucket cap."""
    if (content_type or '').split(';', 1)[0].strip().lower() != PDF_CONTENT_TYPE:
        raise ValidationError('Please upload a PDF file', field='file')

    if not file_data:
        raise ValidationError('The selected file is empty', field='file')

    max_size = current_app.config['DOCUMENTS_MAX_BYTES']
    if len(file_data) > max_size:
        raise ValidationError(
            f'File too large. Maximum size is {max_size // (1024 * 1024)}MB.',
            field='file'
        )


def upload(file_data: bytes, filename: str, content_type: str, name: str, owner_id: str) -> Document:
    """
    Store a PDF and create its draft document row.

    Validation happens before any network call. The blob goes first; the
    row insert follows.
    """
    validate_pdf(file_data, content_type)

    name = (name or '').strip() or default_document_name(filename)
    if not name:
        raise ValidationError('Please enter a document name', field='name')

    ensure_buckets()

    bucket = current_app.config['DOCUMENTS_BUCKET']
    storage_path = generate_storage_path(bucket, owner_id, filename or 'document.pdf')
    upload_file(bucket, storage_path, file_data, PDF_CONTENT_TYPE)

    document = Document(
        name=name,
        status=Document.STATUS_DRAFT,
        created_by=owner_id,
        file_path=storage_path,
    )
    try:
        db.session.add(document)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Document row insert failed for {storage_path}: {e}")
        delete_or_defer(bucket, storage_path)
        raise SignDeskError(f'Could not save document: {e}') from e

    logger.info(f"Uploaded document {document.id} ({storage_path}) for user {owner_id}")
    return document


def get(document_id: str) -> Document:
    document = db.session.get(Document, document_id)
    if document is None:
        raise DocumentNotFound(document_id)
    return document


def get_for_owner(document_id: str, owner_id: str) -> Document:
    """Like get(), but someone else's document counts as not found."""
    document = get(document_id)
    if document.created_by != owner_id:
        raise DocumentNotFound(document_id)
    return document


def get_signed_access_url(document: Document, ttl_seconds: int) -> str:
    """Time-limited URL for the document's PDF."""
    return get_signed_url(current_app.config['DOCUMENTS_BUCKET'], document.file_path, ttl_seconds)


def list_for_owner(owner_id: str) -> list:
    """All of a user's documents, newest first."""
    return Document.query.filter_by(created_by=owner_id).order_by(Document.created_at.desc()).all()


def send_for_signing(document: Document, redirect_to: str = None) -> Document:
    """
    Move a draft document to 'sent'.

    Email assignees that match a known user are rewritten to that user's id;
    the rest are invited through Supabase Auth after the status change is
    committed.
    """
    if not document.can_transition_to(Document.STATUS_SENT):
        raise InvalidTransitionError(document.status, Document.STATUS_SENT)

    if not document.fields:
        raise ValidationError('Add at least one field before sending the document')

    to_invite = []
    for field in document.fields:
        if field.assignee_type != FormField.ASSIGNEE_EMAIL:
            continue
        user = User.find_by_email(field.assigned_to)
        if user:
            field.assigned_to = user.id
            field.assignee_type = FormField.ASSIGNEE_USER
        elif field.assigned_to.lower() not in to_invite:
            to_invite.append(field.assigned_to.lower())

    document.transition_to(Document.STATUS_SENT)
    db.session.commit()
    logger.info(f"Document {document.id} sent for signing ({len(to_invite)} invitations)")

    if current_app.config.get('INVITE_UNKNOWN_SIGNERS'):
        for email in to_invite:
            invite_signer(email, redirect_to=redirect_to)

    return document


def mark_completed(document: Document) -> Document:
    document.transition_to(Document.STATUS_COMPLETED)
    db.session.commit()
    logger.info(f"Document {document.id} completed")
    return document
