"""Typed failures raised by the TaskFlow services.

The services never format HTTP responses; the API layer maps each kind
to a status code.
"""


class TaskFlowError(Exception):
    """Base class for every error raised by the services."""

    default_message = "Request could not be completed."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(TaskFlowError):
    default_message = "Resource not found."


class TaskNotFound(NotFound):
    default_message = "Task not found."


class UserNotFound(NotFound):
    default_message = "User not found."


class DocumentNotFound(NotFound):
    default_message = "Document not found or not associated with any task."


class FileMissingOnDisk(TaskFlowError):
    """The document record exists but its file is gone from storage."""

    default_message = "File not found on server."


class Forbidden(TaskFlowError):
    default_message = "Access denied."


class ViewForbidden(Forbidden):
    default_message = "Not authorized to view this task."


class UpdateForbidden(Forbidden):
    default_message = "Not authorized to update this task."


class DeleteForbidden(Forbidden):
    default_message = "Not authorized to delete this task."


class DownloadForbidden(Forbidden):
    default_message = "Not authorized to download this document."


class AdminRequired(Forbidden):
    default_message = "Access denied. Administrator role required."


class AssignedUserNotFound(TaskFlowError):
    default_message = "Assigned user not found."


class TooManyDocuments(TaskFlowError):
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Maximum {limit} documents allowed.")


class ValidationFailed(TaskFlowError):
    default_message = "Validation failed."


class InvalidDocument(ValidationFailed):
    default_message = "Invalid file type. Only PDF documents are allowed."


class EmailAlreadyRegistered(ValidationFailed):
    default_message = "Email already in use by another user."


class InvalidCredentials(ValidationFailed):
    default_message = "Invalid Credentials."


class SelfModification(ValidationFailed):
    default_message = "Administrators cannot change their own role or delete their own account."


class StorageFailure(TaskFlowError):
    """The database or the file store failed underneath an operation."""

    default_message = "Storage failure."
