"""Exception types shared by the services and the HTTP layer."""


class WebCodeError(Exception):
    """Base class for errors raised by webcode services."""


class ValidationError(WebCodeError, ValueError):
    """An identifier or payload was rejected before any I/O happened."""


class EntityNotFoundError(WebCodeError):
    """The requested entity does not exist for the current owner."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class DuplicateEntityError(WebCodeError):
    """A uniqueness rule (e.g. project name per owner) would be violated."""


class OperationFailedError(WebCodeError):
    """A storage write failed. The driver error is kept as ``__cause__``."""
