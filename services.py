import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError

from models import db, Book, Member
from repositories import BookRepository, MemberRepository
from exceptions import (
    BookNotFoundError,
    MemberNotFoundError,
    BookUnavailableError,
    MemberAlreadyExistsError,
    AlreadyBorrowedError,
    LimitReachedError,
    BookIsOverError,
    MemberHasBooksError,
)

logger = logging.getLogger(__name__)

books = BookRepository()
members = MemberRepository()


@contextmanager
def unit_of_work():
    """Run the block as one transaction: commit on success, roll back on any error."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


# ------------------------------------------------------
# CATALOG
# ------------------------------------------------------

def list_books():
    return [book.to_dict() for book in books.list_all()]


def get_book(book_id):
    book = books.find_by_id(book_id)
    if book is None:
        raise BookNotFoundError("Book not found")
    return book.to_dict()


def create_book(title, author):
    """Register one copy. A known title+author pair gets its amount bumped instead."""
    with unit_of_work():
        book = books.find_by_title_and_author(title, author)
        if book is not None:
            books.add_copy(book.id)
            books.refresh(book)
        else:
            book = books.save(Book(title=title, author=author, amount=1))
        snapshot = book.to_dict()

    logger.info("Book registered | title=%s author=%s amount=%s", title, author, snapshot["amount"])
    return snapshot


def update_book(book_id, title, author):
    with unit_of_work():
        book = books.find_by_id(book_id)
        if book is None:
            raise BookNotFoundError("Book not found")
        book.title = title
        book.author = author
        books.save(book)

    logger.info("Book updated | id=%s", book_id)


def delete_book(book_id):
    """Remove one copy from the catalog. Rows themselves are never dropped."""
    with unit_of_work():
        book = books.find_by_id(book_id, for_update=True)
        if book is None:
            raise BookNotFoundError("Book not found")
        if not books.take_copy(book_id):
            logger.warning("Book delete rejected, no copies left | id=%s", book_id)
            raise BookIsOverError("This book amount is over")

    logger.info("Book copy removed | id=%s", book_id)


def all_distinct_borrowed_books():
    return books.distinct_borrowed_titles()


def all_borrowed_books_with_counts():
    return [
        f"Book name: {title}, Book count that borrowed: {count}"
        for title, count in books.borrowed_titles_with_counts()
    ]


# ------------------------------------------------------
# MEMBERSHIP
# ------------------------------------------------------

def list_members():
    return [member.to_dict() for member in members.list_all()]


def get_member(member_id):
    member = members.find_by_id(member_id)
    if member is None:
        raise MemberNotFoundError("Member not found")
    return member.to_dict()


def books_by_member_name(name):
    if members.find_by_name(name) is None:
        raise MemberNotFoundError("Member by name not found")
    return [book.to_dict() for book in members.books_borrowed_by_name(name)]


def create_member(name):
    if members.exists_by_name(name):
        raise MemberAlreadyExistsError("Member already exists")
    try:
        with unit_of_work():
            member = members.save(Member(name=name))
            snapshot = member.to_dict()
    except IntegrityError as exc:
        # lost a race against a concurrent create with the same name
        raise MemberAlreadyExistsError("Member already exists") from exc

    logger.info("Member created | name=%s", name)
    return snapshot


def update_member(member_id, name):
    try:
        with unit_of_work():
            member = members.find_by_id(member_id)
            if member is None:
                raise MemberNotFoundError("Member not found")
            if member.name != name and members.exists_by_name(name):
                raise MemberAlreadyExistsError("Member already exists")
            member.name = name
            members.save(member)
    except IntegrityError as exc:
        raise MemberAlreadyExistsError("Member already exists") from exc

    logger.info("Member updated | id=%s name=%s", member_id, name)


def delete_member(member_id):
    with unit_of_work():
        if members.find_by_id(member_id) is None:
            raise MemberNotFoundError("Member not found")
        if not members.exists_with_empty_borrowed_set(member_id):
            logger.warning("Member delete rejected, still holds books | id=%s", member_id)
            raise MemberHasBooksError("Member has books")
        members.delete_by_id(member_id)

    logger.info("Member deleted | id=%s", member_id)


# ------------------------------------------------------
# BORROWING
# ------------------------------------------------------

class BorrowingCoordinator:
    """
    Moves copies between the catalog and members.

    Borrow and return each touch a Book and a Member; both changes are
    committed in a single unit of work. The amount changes through a
    conditional UPDATE, so two requests never lend out the same last copy.

    Attributes:
        book_limit (int): Max books one member may hold at the same time.
    """

    def __init__(self, book_limit, book_repository=None, member_repository=None):
        if book_limit < 1:
            raise ValueError(f"book_limit must be positive, got {book_limit}")
        self.book_limit = book_limit
        self.books = book_repository or books
        self.members = member_repository or members

    def borrow(self, member_id, book_id):
        """
        Lend one copy of a book to a member.

        Checks run in a fixed order and the first failing one is raised:
        already borrowed, member missing, limit reached, book unavailable.

        Returns:
            dict: the book after the decrement (title, author, amount).
        """
        try:
            with unit_of_work():
                snapshot = self._borrow(member_id, book_id)
        except IntegrityError as exc:
            # a concurrent borrow of the same pair committed first
            logger.warning("Borrow rejected, already held | member=%s book=%s", member_id, book_id)
            raise AlreadyBorrowedError("Member have this book") from exc

        logger.info("Book borrowed | member=%s book=%s left=%s", member_id, book_id, snapshot["amount"])
        return snapshot

    def _borrow(self, member_id, book_id):
        if self.members.exists_relationship(book_id, member_id):
            logger.warning("Borrow rejected, already held | member=%s book=%s", member_id, book_id)
            raise AlreadyBorrowedError("Member have this book")

        member = self.members.find_by_id(member_id, for_update=True)
        if member is None:
            raise MemberNotFoundError("Member not found")

        if len(member.borrowed_books) >= self.book_limit:
            logger.warning("Borrow rejected, limit reached | member=%s limit=%s", member_id, self.book_limit)
            raise LimitReachedError(self.book_limit)

        book = self.books.find_available_by_id(book_id, for_update=True)
        if book is None:
            reason = "missing" if self.books.find_by_id(book_id) is None else "exhausted"
            logger.warning("Borrow rejected, book %s | member=%s book=%s", reason, member_id, book_id)
            raise BookUnavailableError("Book not available", reason=reason)

        if not self.books.take_copy(book_id):
            logger.warning("Borrow rejected, last copy taken meanwhile | member=%s book=%s", member_id, book_id)
            raise BookUnavailableError("Book not available", reason="exhausted")

        # the pair may have been committed after the first check
        if book in member.borrowed_books:
            raise AlreadyBorrowedError("Member have this book")

        member.borrowed_books.append(book)
        self.members.save(member)
        return self.books.refresh(book).to_dict()

    def return_book(self, member_id, book_id):
        """
        Take a copy back from a member and put it on the shelf.

        The amount goes up even when the member did not hold the book, so a
        stray return can push it past the copies ever registered.
        """
        with unit_of_work():
            member = self.members.find_by_id(member_id, for_update=True)
            if member is None:
                raise MemberNotFoundError("Member not found")

            book = self.books.find_by_id(book_id, for_update=True)
            if book is None:
                raise BookNotFoundError("Book not found")

            self.books.add_copy(book_id)
            if book in member.borrowed_books:
                member.borrowed_books.remove(book)
            self.members.save(member)

        logger.info("Book returned | member=%s book=%s", member_id, book_id)
