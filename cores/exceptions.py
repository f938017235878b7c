"""
Error taxonomy shared by the exam apps.

Every error carries the HTTP status and a short machine code so views can
answer ``{"error": ..., "code": ...}`` without a lookup table.
"""


class ExamError(Exception):
    status_code = 400
    code = "error"
    default_message = "Request could not be processed."

    def __init__(self, message=None):
        super().__init__(message or self.default_message)


# --- Input ---

class ValidationError(ExamError):
    code = "validation_error"
    default_message = "Invalid input."


class OutOfRange(ValidationError):
    code = "out_of_range"
    default_message = "Value is outside the allowed range."


# --- Session state ---

class StateError(ExamError):
    status_code = 409
    code = "state_error"


class AlreadyCompleted(StateError):
    code = "already_completed"
    default_message = "You have already completed this exam."


class AlreadySubmitted(StateError):
    code = "already_submitted"
    default_message = "Exam already submitted."


class NotYetSubmitted(StateError):
    code = "not_yet_submitted"
    default_message = "The exam session has not been submitted yet."


# --- Availability ---

class WindowError(ExamError):
    status_code = 403
    code = "window_error"


class NotYetOpen(WindowError):
    code = "not_yet_open"
    default_message = "This exam is not open yet."


class Closed(WindowError):
    code = "closed"
    default_message = "This exam is closed."


class TenantMismatch(WindowError):
    code = "tenant_mismatch"
    default_message = "This exam is not available to your organization."


# --- Stored data ---

class DataIntegrityError(ExamError):
    status_code = 500
    code = "data_integrity"


class MissingKey(DataIntegrityError):
    code = "missing_key"
    default_message = "Objective question has no correct answer."


# --- Collaborators ---

class UploadServiceError(ExamError):
    status_code = 503
    code = "upload_unavailable"
    default_message = "The upload service is unavailable."
