class BMECatError(Exception):
    """Base class for all errors raised by the BMECat codec."""


class IllegalStreamError(BMECatError):
    """The supplied stream cannot be read from or written to."""


class MalformedDocumentError(BMECatError, ValueError):
    """The input is not a well-formed BMECat document, or a typed field
    holds text that does not parse as the expected type."""


class InvalidCatalogError(BMECatError, ValueError):
    """The catalog lacks data the BMECat grammar requires for encoding."""


class CatalogSchemaError(BMECatError, ValueError):
    """A JSON catalog does not conform to the catalog JSON schema.

    Args:
        errors: List of (message, instance path) tuples, one per violation.
    """

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors or []
