"""Error taxonomy for the versioning and change-proposal core.

Domain errors fail fast and are never retried inside the core. The HTTP
layer decides how each kind is presented (see ``backend.docflow.main``).
"""


class DocflowError(Exception):
    """Base class for all errors raised by the core."""

    code = "docflow_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class NotFoundError(DocflowError):
    """Entity or its parent entity does not exist."""

    code = "not_found"


class ForbiddenError(DocflowError):
    """Access or edit policy denied the operation."""

    code = "forbidden"


class ConflictError(DocflowError):
    """State transition from a non-source state, or a uniqueness violation."""

    code = "conflict"


class GenerationError(DocflowError):
    """The text-generation collaborator failed or returned empty content."""

    code = "generation_failed"


class StorageError(DocflowError):
    """Infrastructure failure in the relational store (connection loss etc.).

    Distinct from the domain kinds above; retry policy belongs to the caller.
    """

    code = "storage_unavailable"
