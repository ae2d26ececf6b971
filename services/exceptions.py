"""
SignDesk Exceptions

Errors raised by the document, field, signature and auth services.
Routes catch these per operation and turn them into flash messages,
redirects or JSON error payloads.
"""


class SignDeskError(Exception):
    """Base exception for all application errors."""
    pass


class ConfigurationError(SignDeskError):
    """
    Raised when required platform settings are missing.

    This is fatal: it is raised while constructing the Supabase clients
    and is never caught by request handlers.
    """
    pass


class ValidationError(SignDeskError):
    """
    Raised when user input is rejected before any network call.

    Covers wrong content types, oversized files and malformed
    field placements.
    """
    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message)


class NotFoundError(SignDeskError):
    """A requested row does not exist (or is not visible to the caller)."""
    pass


class DocumentNotFound(NotFoundError):
    def __init__(self, document_id):
        self.document_id = document_id
        super().__init__(f"Document {document_id} not found")


class SignatureNotFound(NotFoundError):
    def __init__(self, signature_id):
        self.signature_id = signature_id
        super().__init__(f"Signature {signature_id} not found")


class AssigneeUnresolvedError(SignDeskError):
    """No email was given for a field and there is no signed-in caller."""
    def __init__(self, message: str = "Could not determine field assignee"):
        super().__init__(message)


class InvalidTransitionError(SignDeskError):
    """A document status change would move backward or skip a step."""
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move document from '{current}' to '{target}'")


class StorageError(SignDeskError):
    """
    Raised when a Supabase Storage call fails.

    Wraps the underlying SDK error with the bucket and path involved.
    """
    def __init__(self, message: str, bucket: str = None, path: str = None):
        self.bucket = bucket
        self.path = path
        super().__init__(message)


class AuthError(SignDeskError):
    """
    Raised when Supabase Auth rejects a sign-in, sign-up or code exchange.

    The message is safe to show to the user.
    """
    pass
