from __future__ import annotations


class DomainError(Exception):
    pass


class DomainValidationError(DomainError):
    pass


class DomainInvariantError(DomainError):
    pass


class DomainDependencyError(DomainError):
    pass


class ConfigurationError(DomainValidationError):
    pass


class InvalidSelectionError(DomainValidationError):
    pass


class TemplateNotFoundError(DomainDependencyError):
    def __init__(self, template_id: str) -> None:
        super().__init__(f"template not found: {template_id}")
        self.template_id = template_id


class AnswersPlaceholderMissingError(DomainInvariantError):
    pass


class ConversionError(DomainDependencyError):
    pass


class StorageTransportError(DomainDependencyError):
    pass


class RemoteStorageError(DomainDependencyError):
    """Non-success answer from the storage backend.

    ``status`` is ``None`` when the request never produced an HTTP response.
    """

    operation = "storage request"

    def __init__(self, *, status: int | None, message: str) -> None:
        super().__init__(f"{self.operation} failed: {status if status is not None else 'no-status'} {message}")
        self.status = status
        self.message = message


class FolderProvisionError(RemoteStorageError):
    operation = "create folder"


class UploadError(RemoteStorageError):
    operation = "upload"
