# models.py
import uuid
from datetime import datetime

from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy

from services.exceptions import InvalidTransitionError

db = SQLAlchemy()


def new_uuid():
    return str(uuid.uuid4())


class User(UserMixin, db.Model):
    """
    Local mirror of a Supabase Auth user.

    The platform owns the account; this row only exists so documents,
    fields and signatures have something to reference.
    """
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    @classmethod
    def sync_from_auth(cls, user_id, email):
        """Insert or refresh the mirror row for an authenticated user."""
        user = db.session.get(cls, user_id)
        if user is None:
            user = cls(id=user_id, email=email)
            db.session.add(user)
        elif email and user.email != email:
            user.email = email
        else:
            return user
        db.session.commit()
        return user

    @classmethod
    def find_by_email(cls, email):
        return cls.query.filter(db.func.lower(cls.email) == email.strip().lower()).first()

    def __repr__(self):
        return f'<User {self.email}>'


class Document(db.Model):
    __tablename__ = 'documents'

    STATUS_DRAFT = 'draft'
    STATUS_SENT = 'sent'
    STATUS_COMPLETED = 'completed'
    STATUSES = (STATUS_DRAFT, STATUS_SENT, STATUS_COMPLETED)

    # Allowed forward moves; nothing ever goes back
    NEXT_STATUS = {
        STATUS_DRAFT: STATUS_SENT,
        STATUS_SENT: STATUS_COMPLETED,
    }

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=STATUS_DRAFT)
    created_by = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    file_path = db.Column(db.String(500), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow,
                           onupdate=datetime.utcnow)
    sent_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)

    owner = db.relationship('User', backref=db.backref('documents', lazy=True))
    fields = db.relationship('FormField', backref='document', lazy=True,
                             order_by='FormField.created_at',
                             cascade='all, delete-orphan')

    @property
    def is_editable(self):
        return self.status == self.STATUS_DRAFT

    def can_transition_to(self, target):
        return self.NEXT_STATUS.get(self.status) == target

    def transition_to(self, target):
        """Move the document one step forward, stamping the matching timestamp."""
        if not self.can_transition_to(target):
            raise InvalidTransitionError(self.status, target)
        self.status = target
        now = datetime.utcnow()
        if target == self.STATUS_SENT:
            self.sent_at = now
        elif target == self.STATUS_COMPLETED:
            self.completed_at = now
        self.updated_at = now

    def __repr__(self):
        return f'<Document {self.name} ({self.status})>'


class FormField(db.Model):
    __tablename__ = 'form_fields'

    TYPE_SIGNATURE = 'signature'
    TYPE_TEXT = 'text'
    TYPE_DATE = 'date'
    TYPES = (TYPE_SIGNATURE, TYPE_TEXT, TYPE_DATE)

    ASSIGNEE_USER = 'user'
    ASSIGNEE_EMAIL = 'email'

    # (width, height) in pixels of the rendered container
    DEFAULT_SIZES = {
        TYPE_SIGNATURE: (150, 60),
        TYPE_TEXT: (120, 30),
        TYPE_DATE: (120, 30),
    }

    OVERLAY_COLORS = {
        TYPE_SIGNATURE: '#2563eb',
        TYPE_TEXT: '#16a34a',
        TYPE_DATE: '#d97706',
    }

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    document_id = db.Column(db.String(36), db.ForeignKey('documents.id', ondelete='CASCADE'),
                            nullable=False, index=True)
    field_type = db.Column(db.String(20), nullable=False)
    x_position = db.Column(db.Float, nullable=False)
    y_position = db.Column(db.Float, nullable=False)
    width = db.Column(db.Float, nullable=False)
    height = db.Column(db.Float, nullable=False)
    page = db.Column(db.Integer, nullable=False, default=1)
    assigned_to = db.Column(db.String(255))
    assignee_type = db.Column(db.String(10), nullable=False, default=ASSIGNEE_USER)
    # Size of the rendered container when the field was placed
    render_width = db.Column(db.Float)
    render_height = db.Column(db.Float)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    @property
    def assigned_to_email(self):
        return self.assignee_type == self.ASSIGNEE_EMAIL

    def normalized(self):
        """
        Return the box as fractions of the rendered page, or None when the
        render size was not captured.
        """
        if not self.render_width or not self.render_height:
            return None
        return {
            'page': self.page,
            'x': self.x_position / self.render_width,
            'y': self.y_position / self.render_height,
            'width': self.width / self.render_width,
            'height': self.height / self.render_height,
        }

    def overlay_style(self):
        """Inline CSS for the absolutely positioned overlay box."""
        color = self.OVERLAY_COLORS[self.field_type]
        box = self.normalized()
        if box:
            geometry = (
                f"left:{box['x'] * 100:.4f}%;top:{box['y'] * 100:.4f}%;"
                f"width:{box['width'] * 100:.4f}%;height:{box['height'] * 100:.4f}%;"
            )
        else:
            geometry = (
                f"left:{self.x_position:g}px;top:{self.y_position:g}px;"
                f"width:{self.width:g}px;height:{self.height:g}px;"
            )
        return f"position:absolute;{geometry}border:2px solid {color};"

    def to_dict(self):
        return {
            'id': self.id,
            'document_id': self.document_id,
            'field_type': self.field_type,
            'x_position': self.x_position,
            'y_position': self.y_position,
            'width': self.width,
            'height': self.height,
            'page': self.page,
            'assigned_to': self.assigned_to,
            'assignee_type': self.assignee_type,
            'normalized': self.normalized(),
            'style': self.overlay_style(),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<FormField {self.field_type} on {self.document_id}>'


class Signature(db.Model):
    __tablename__ = 'signatures'
    __table_args__ = (
        # One default signature per user
        db.Index('uq_signatures_one_default_per_user', 'user_id', unique=True,
                 postgresql_where=db.text('is_default'),
                 sqlite_where=db.text('is_default')),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'),
                        nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    file_path = db.Column(db.String(500), nullable=False)
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    user = db.relationship('User', backref=db.backref('signatures', lazy=True))

    def __repr__(self):
        return f'<Signature {self.name} default={self.is_default}>'


class StorageIntent(db.Model):
    """
    Outbox row for a blob operation that still has to happen.

    Written when a storage call that should follow a database change fails,
    and retried by jobs/storage_reconcile.py until it succeeds.
    """
    __tablename__ = 'storage_intents'

    ACTION_DELETE = 'delete'

    STATUS_PENDING = 'pending'
    STATUS_DONE = 'done'
    STATUS_ABANDONED = 'abandoned'

    id = db.Column(db.Integer, primary_key=True)
    bucket = db.Column(db.String(63), nullable=False)
    path = db.Column(db.String(500), nullable=False)
    action = db.Column(db.String(20), nullable=False, default=ACTION_DELETE)
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING, index=True)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    last_error = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow,
                           onupdate=datetime.utcnow)

    @classmethod
    def pending(cls):
        return cls.query.filter_by(status=cls.STATUS_PENDING).order_by(cls.created_at.asc()).all()

    def __repr__(self):
        return f'<StorageIntent {self.action} {self.bucket}/{self.path} ({self.status})>'
