"""
Document routes - upload, view, field editor and signing status.
"""
from flask import Blueprint, render_template, redirect, url_for, flash, request, jsonify, current_app
from flask_login import login_required, current_user

from forms import DocumentUploadForm
from models import FormField
from services import document_store, field_placement
from services.exceptions import (
    AssigneeUnresolvedError,
    DocumentNotFound,
    InvalidTransitionError,
    SignDeskError,
    StorageError,
    ValidationError,
)
from utils import format_file_size

documents_bp = Blueprint('documents', __name__, url_prefix='/documents')


def _load_owned_or_redirect(id):
    """Returns (document, None) or (None, redirect response)."""
    try:
        return document_store.get_for_owner(id, current_user.id), None
    except DocumentNotFound:
        flash('Document not found', 'error')
        return None, redirect(url_for('main.dashboard'))


def _pdf_url(document, ttl):
    try:
        return document_store.get_signed_access_url(document, ttl)
    except StorageError:
        flash('Error loading document', 'error')
        return None


@documents_bp.route('/new', methods=['GET', 'POST'])
@login_required
def new_document():
    """Upload a PDF and create a draft document."""
    form = DocumentUploadForm()
    if form.validate_on_submit():
        upload = form.file.data
        file_data = upload.read()
        try:
            document = document_store.upload(
                file_data=file_data,
                filename=upload.filename,
                content_type=upload.mimetype,
                name=form.name.data,
                owner_id=current_user.id,
            )
        except ValidationError as e:
            flash(str(e), 'error')
            return render_template('documents/new.html', form=form), 400
        except SignDeskError as e:
            flash(f'Error uploading document: {e}', 'error')
            return render_template('documents/new.html', form=form), 500

        flash(f'Document uploaded successfully ({format_file_size(len(file_data))})', 'success')
        return redirect(url_for('documents.edit_document', id=document.id))

    return render_template('documents/new.html', form=form)


@documents_bp.route('/<id>')
@login_required
def view_document(id):
    document, response = _load_owned_or_redirect(id)
    if response:
        return response

    pdf_url = _pdf_url(document, current_app.config['DOCUMENT_VIEW_URL_TTL'])
    fields = field_placement.list_for_document(document.id)
    return render_template('documents/view.html', document=document, pdf_url=pdf_url, fields=fields)


@documents_bp.route('/<id>/edit')
@login_required
def edit_document(id):
    """Visual field editor: click on the document to place a field."""
    document, response = _load_owned_or_redirect(id)
    if response:
        return response

    if not document.is_editable:
        flash(f'This document is {document.status} and can no longer be edited.', 'info')
        return redirect(url_for('documents.view_document', id=document.id))

    pdf_url = _pdf_url(document, current_app.config['DOCUMENT_EDIT_URL_TTL'])
    fields = field_placement.list_for_document(document.id)
    return render_template(
        'documents/edit.html',
        document=document,
        pdf_url=pdf_url,
        fields=fields,
        field_types=FormField.TYPES,
    )


@documents_bp.route('/<id>/fields', methods=['GET'])
@login_required
def list_fields(id):
    try:
        document = document_store.get_for_owner(id, current_user.id)
    except DocumentNotFound:
        return jsonify({'success': False, 'error': 'Document not found'}), 404

    fields = field_placement.list_for_document(document.id)
    return jsonify({'success': True, 'fields': [f.to_dict() for f in fields]})


@documents_bp.route('/<id>/fields', methods=['POST'])
@login_required
def add_field(id):
    """
    Place one field.

    Expects JSON: field_type, x, y, and optionally assigned_to (email),
    page, render_width, render_height.
    """
    try:
        document = document_store.get_for_owner(id, current_user.id)
    except DocumentNotFound:
        return jsonify({'success': False, 'error': 'Document not found'}), 404

    data = request.get_json(silent=True) or {}
    try:
        field = field_placement.place_field(
            document_id=document.id,
            field_type=data.get('field_type', ''),
            position={'x': data.get('x'), 'y': data.get('y')},
            assignee_email=data.get('assigned_to'),
            caller_id=current_user.id,
            page=data.get('page', 1),
            render_size={'width': data.get('render_width'), 'height': data.get('render_height')},
        )
    except (ValidationError, AssigneeUnresolvedError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except SignDeskError as e:
        return jsonify({'success': False, 'error': str(e)}), 500

    return jsonify({
        'success': True,
        'message': f'{field.field_type} field added',
        'field': field.to_dict()
    }), 201


@documents_bp.route('/<id>/send', methods=['POST'])
@login_required
def send_document(id):
    document, response = _load_owned_or_redirect(id)
    if response:
        return response

    try:
        document_store.send_for_signing(
            document,
            redirect_to=url_for('auth.callback', _external=True,
                                next=url_for('documents.view_document', id=document.id)),
        )
    except (ValidationError, InvalidTransitionError) as e:
        flash(str(e), 'error')
        return redirect(url_for('documents.edit_document', id=document.id))

    flash('Document sent for signing', 'success')
    return redirect(url_for('documents.view_document', id=document.id))


@documents_bp.route('/<id>/complete', methods=['POST'])
@login_required
def complete_document(id):
    document, response = _load_owned_or_redirect(id)
    if response:
        return response

    try:
        document_store.mark_completed(document)
    except InvalidTransitionError as e:
        flash(str(e), 'error')
    else:
        flash('Document marked as completed', 'success')
    return redirect(url_for('documents.view_document', id=document.id))
