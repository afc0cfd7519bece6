class DocumentError(Exception):
    """Base error for document generation."""


class MissingDataError(DocumentError):
    """A record or asset the document depends on is not available."""


class PersistenceError(DocumentError):
    """The rendered document could not be stored."""
