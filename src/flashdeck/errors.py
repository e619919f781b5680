"""Exceptions raised by the repository layer."""


class FlashdeckError(Exception):
    """Base class for errors shown to the user as-is."""


class NotFoundError(FlashdeckError, LookupError):
    pass


class DuplicateError(FlashdeckError, ValueError):
    pass


class InvalidInputError(FlashdeckError, ValueError):
    pass


class AuthenticationError(FlashdeckError):
    pass


class ImportFormatError(FlashdeckError, ValueError):
    pass
