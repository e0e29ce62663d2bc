import pytest

from models import Book
from exceptions import BookIsOverError, BookNotFoundError
import services


def test_create_book_starts_with_one_copy(app):
    assert services.create_book("Clean Code", "Robert Martin") == {
        "title": "Clean Code", "author": "Robert Martin", "amount": 1,
    }


def test_create_same_book_twice_increments_amount(app):
    services.create_book("Effective Java", "Joshua Bloch")
    result = services.create_book("Effective Java", "Joshua Bloch")

    assert result["amount"] == 2
    assert Book.query.filter_by(title="Effective Java", author="Joshua Bloch").count() == 1


def test_same_title_other_author_is_a_new_book(app):
    services.create_book("Effective Java", "Joshua Bloch")
    services.create_book("Effective Java", "Someone Else")
    assert len(services.list_books()) == 2


def test_get_book(book_id):
    assert services.get_book(book_id) == {"title": "Title", "author": "Author", "amount": 1}


def test_get_missing_book(app):
    with pytest.raises(BookNotFoundError, match="Book not found"):
        services.get_book(42)


def test_update_book_overwrites_title_and_author(book_id):
    services.update_book(book_id, "New Title", "New Author")
    assert services.get_book(book_id) == {"title": "New Title", "author": "New Author", "amount": 1}


def test_update_missing_book(app):
    with pytest.raises(BookNotFoundError):
        services.update_book(42, "New Title", "New Author")


def test_delete_book_consumes_one_copy(book_id):
    services.create_book("Title", "Author")
    services.delete_book(book_id)
    assert services.get_book(book_id)["amount"] == 1


def test_delete_book_with_no_copies_left(book_id):
    services.delete_book(book_id)
    with pytest.raises(BookIsOverError, match="This book amount is over"):
        services.delete_book(book_id)
    # row is kept at zero
    assert services.get_book(book_id)["amount"] == 0


def test_delete_missing_book(app):
    with pytest.raises(BookNotFoundError):
        services.delete_book(42)


def test_borrowed_titles_projections(coordinator, member_id, book_id):
    services.create_book("Title", "Author")
    services.create_book("Other", "Author")
    services.create_member("Bob")
    bob = services.members.find_by_name("Bob").id

    assert services.all_distinct_borrowed_books() == []
    assert services.all_borrowed_books_with_counts() == []

    coordinator.borrow(member_id, book_id)
    coordinator.borrow(bob, book_id)

    assert services.all_distinct_borrowed_books() == ["Title"]
    assert services.all_borrowed_books_with_counts() == [
        "Book name: Title, Book count that borrowed: 2",
    ]
