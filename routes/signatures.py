"""
Signature routes - manage a user's saved signature images.
Drawn signatures arrive as JSON (canvas data URL); uploads come as a form.
"""
from flask import Blueprint, render_template, redirect, url_for, flash, request, jsonify
from flask_login import login_required, current_user

from forms import SignatureUploadForm
from services import signature_library
from services.exceptions import SignatureNotFound, SignDeskError, StorageError, ValidationError
from services.signature_library import SignatureImage

signatures_bp = Blueprint('signatures', __name__, url_prefix='/signatures')


def _serialize(signature, url=None):
    return {
        'id': signature.id,
        'name': signature.name,
        'is_default': signature.is_default,
        'url': url,
        'created_at': signature.created_at.isoformat() if signature.created_at else None,
    }


def _display_url(signature):
    try:
        return signature_library.get_display_url(signature)
    except StorageError:
        return None


@signatures_bp.route('')
@login_required
def list_signatures():
    signatures = signature_library.list_for_user(current_user.id)
    urls = {signature.id: _display_url(signature) for signature in signatures}
    return render_template(
        'signatures/index.html',
        signatures=signatures,
        urls=urls,
        form=SignatureUploadForm(),
    )


@signatures_bp.route('/draw', methods=['POST'])
@login_required
def save_drawn_signature():
    """Save a signature drawn on the canvas. Expects JSON: name, data_url, make_default."""
    data = request.get_json(silent=True) or {}
    try:
        image = SignatureImage.from_data_url(data.get('data_url', ''))
        signature = signature_library.create(
            current_user.id,
            data.get('name'),
            image,
            make_default=bool(data.get('make_default')),
        )
    except ValidationError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except SignDeskError as e:
        return jsonify({'success': False, 'error': f'Error saving signature: {e}'}), 500

    return jsonify({
        'success': True,
        'message': 'Signature saved successfully',
        'signature': _serialize(signature, _display_url(signature))
    }), 201


@signatures_bp.route('/upload', methods=['POST'])
@login_required
def upload_signature():
    form = SignatureUploadForm()
    if not form.validate_on_submit():
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'error')
        return redirect(url_for('signatures.list_signatures'))

    upload = form.file.data
    try:
        image = SignatureImage.from_upload(upload.read(), upload.mimetype, upload.filename)
        signature_library.create(current_user.id, form.name.data, image,
                                 make_default=form.make_default.data)
    except ValidationError as e:
        flash(str(e), 'error')
    except SignDeskError as e:
        flash(f'Error saving signature: {e}', 'error')
    else:
        flash('Signature saved successfully', 'success')

    return redirect(url_for('signatures.list_signatures'))


@signatures_bp.route('/<id>/default', methods=['POST'])
@login_required
def make_default(id):
    try:
        signature_library.set_default(current_user.id, id)
    except SignatureNotFound:
        flash('Signature not found', 'error')
    except SignDeskError as e:
        flash(f'Error updating default signature: {e}', 'error')
    else:
        flash('Default signature updated', 'success')
    return redirect(url_for('signatures.list_signatures'))


@signatures_bp.route('/<id>/delete', methods=['POST'])
@login_required
def delete_signature(id):
    try:
        signature_library.delete(current_user.id, id)
    except SignatureNotFound:
        flash('Signature not found', 'error')
    except SignDeskError as e:
        flash(f'Error deleting signature: {e}', 'error')
    else:
        flash('Signature deleted', 'success')
    return redirect(url_for('signatures.list_signatures'))


@signatures_bp.route('/<id>/url')
@login_required
def signature_url(id):
    try:
        signature = signature_library.get_for_user(current_user.id, id)
        url = signature_library.get_display_url(signature)
    except SignatureNotFound:
        return jsonify({'success': False, 'error': 'Signature not found'}), 404
    except StorageError as e:
        return jsonify({'success': False, 'error': str(e)}), 500
    return jsonify({'success': True, 'url': url})
