"""
Field Placement

Records typed, positioned, assignee-bound fields on a draft document.
Positions are pixels relative to the rendered document container; when
the caller also reports that container's size the field can later be
expressed in page-relative fractions (FormField.normalized()).
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from models import db, Document, FormField
from services.exceptions import AssigneeUnresolvedError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Assignee:
    """Who must fill a field: a known user id or a raw email address."""
    kind: str
    value: str

    @classmethod
    def by_user_id(cls, user_id: str) -> 'Assignee':
        return cls(FormField.ASSIGNEE_USER, user_id)

    @classmethod
    def by_email(cls, email: str) -> 'Assignee':
        return cls(FormField.ASSIGNEE_EMAIL, email)


def resolve_assignee(assignee_email: Optional[str], caller_id: Optional[str]) -> Assignee:
    """
    An explicit email wins and is kept verbatim (no lookup); otherwise the
    field belongs to the signed-in caller.
    """
    email = (assignee_email or '').strip()
    if email:
        if '@' not in email:
            raise ValidationError(f'"{email}" is not a valid email address', field='assigned_to')
        return Assignee.by_email(email)
    if caller_id:
        return Assignee.by_user_id(caller_id)
    raise AssigneeUnresolvedError()


def _coordinate(position: dict, key: str) -> float:
    try:
        value = float(position[key])
    except (KeyError, TypeError, ValueError):
        raise ValidationError(f'Field position needs a numeric "{key}"', field=key)
    if not math.isfinite(value):
        raise ValidationError(f'Field position "{key}" must be a finite number', field=key)
    if value < 0:
        raise ValidationError(f'Field position "{key}" cannot be negative', field=key)
    return value


def _render_dimension(render_size: Optional[dict], key: str) -> Optional[float]:
    if not render_size or render_size.get(key) in (None, ''):
        return None
    try:
        value = float(render_size[key])
    except (TypeError, ValueError):
        raise ValidationError(f'Render size "{key}" must be a number', field=key)
    if not math.isfinite(value) or value <= 0:
        raise ValidationError(f'Render size "{key}" must be a positive number', field=key)
    return value


def place_field(
    document_id: str,
    field_type: str,
    position: dict,
    assignee_email: Optional[str] = None,
    caller_id: Optional[str] = None,
    page: int = 1,
    render_size: Optional[dict] = None,
) -> FormField:
    """
    Add one field to a draft document.

    Args:
        document_id: Parent document
        field_type: 'signature', 'text' or 'date'
        position: {'x': ..., 'y': ...} click offset in pixels
        assignee_email: Recipient email; when empty the caller is assignee
        caller_id: Id of the signed-in user, if any
        page: 1-based page number
        render_size: {'width': ..., 'height': ...} of the rendered container

    Raises:
        AssigneeUnresolvedError: no email and no caller
        ValidationError: bad type, position, page or document state
    """
    if field_type not in FormField.TYPES:
        raise ValidationError(f'Unknown field type "{field_type}"', field='field_type')

    assignee = resolve_assignee(assignee_email, caller_id)

    x = _coordinate(position or {}, 'x')
    y = _coordinate(position or {}, 'y')

    try:
        page = int(page)
    except (TypeError, ValueError):
        raise ValidationError('Page must be a whole number', field='page')
    if page < 1:
        raise ValidationError('Page numbers start at 1', field='page')

    render_width = _render_dimension(render_size, 'width')
    render_height = _render_dimension(render_size, 'height')

    document = db.session.get(Document, document_id)
    if document is None:
        raise ValidationError('Document not found', field='document_id')
    if not document.is_editable:
        raise ValidationError(
            f'Fields can only be added while the document is a draft (it is {document.status})'
        )

    width, height = FormField.DEFAULT_SIZES[field_type]

    field = FormField(
        document_id=document_id,
        field_type=field_type,
        x_position=x,
        y_position=y,
        width=width,
        height=height,
        page=page,
        assigned_to=assignee.value,
        assignee_type=assignee.kind,
        render_width=render_width,
        render_height=render_height,
    )
    db.session.add(field)
    db.session.commit()

    logger.info(f"Placed {field_type} field {field.id} on document {document_id} for {assignee.value}")
    return field


def list_for_document(document_id: str) -> list:
    """Fields of a document in placement order."""
    return FormField.query.filter_by(document_id=document_id).order_by(FormField.created_at.asc()).all()
