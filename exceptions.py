class LibraryError(Exception):
    """Base exception for library errors. Carries the HTTP status it maps to."""

    status_code = 500


class NotFoundError(LibraryError):
    status_code = 404


class BookNotFoundError(NotFoundError):
    """Requested book id does not exist."""


class MemberNotFoundError(NotFoundError):
    """Requested member id or name does not exist."""


class BookUnavailableError(NotFoundError):
    """No book with the given id has a copy left to lend.

    ``reason`` is ``"missing"`` when the id is unknown and ``"exhausted"``
    when the book exists with zero copies. Both surface the same way.
    """

    def __init__(self, message, reason=None):
        super().__init__(message)
        self.reason = reason


class BusinessRuleError(LibraryError):
    status_code = 400


class MemberAlreadyExistsError(BusinessRuleError):
    """A member with this name is already registered."""


class AlreadyBorrowedError(BusinessRuleError):
    """The member already holds a copy of this book."""


class LimitReachedError(BusinessRuleError):
    """The member holds as many books as the configured limit allows."""

    def __init__(self, limit):
        super().__init__(f"Limit of books is {limit}")
        self.limit = limit


class BookIsOverError(BusinessRuleError):
    """No copies left to remove from the catalog."""


class MemberHasBooksError(BusinessRuleError):
    """Member cannot be deleted while holding books."""


class ValidationFailedError(LibraryError):
    """Payload failed validation. ``messages`` lists every violation."""

    status_code = 400

    def __init__(self, messages):
        super().__init__("; ".join(messages))
        self.messages = list(messages)
