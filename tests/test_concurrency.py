import threading

import pytest
from sqlalchemy.exc import IntegrityError

from app import create_app
from models import db, Book
from exceptions import AlreadyBorrowedError, BookUnavailableError
from config import Config
import services


@pytest.fixture
def file_app(tmp_path):
    class FileConfig(Config):
        TESTING = True
        MEMBER_MAX_BOOK_LIMIT = 10
        LOG_LEVEL = "WARNING"
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "library.db")
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"check_same_thread": False, "timeout": 30}}

    app = create_app(FileConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def seed(app, copies, *names):
    with app.app_context():
        for _ in range(copies):
            services.create_book("Title", "Author")
        for name in names:
            services.create_member(name)
        book_id = services.books.find_by_title_and_author("Title", "Author").id
        member_ids = [services.members.find_by_name(name).id for name in names]
    return book_id, member_ids


def borrow_in_parallel(app, pairs):
    """Run each (member_id, book_id) borrow in its own thread and app context."""
    barrier = threading.Barrier(len(pairs))
    outcomes = []

    def borrow(member_id, book_id):
        with app.app_context():
            coordinator = services.BorrowingCoordinator(app.config["MEMBER_MAX_BOOK_LIMIT"])
            barrier.wait()
            try:
                coordinator.borrow(member_id, book_id)
                outcomes.append("borrowed")
            except (BookUnavailableError, AlreadyBorrowedError) as exc:
                outcomes.append(type(exc).__name__)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=borrow, args=pair) for pair in pairs]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return sorted(outcomes)


def test_last_copy_goes_to_exactly_one_member(file_app):
    book_id, (alice, bob) = seed(file_app, 1, "Alice", "Bob")

    outcomes = borrow_in_parallel(file_app, [(alice, book_id), (bob, book_id)])

    assert outcomes == ["BookUnavailableError", "borrowed"]
    with file_app.app_context():
        assert db.session.get(Book, book_id).amount == 0
        assert len(db.session.get(Book, book_id).borrowers) == 1


def test_same_pair_borrowed_twice_at_once(file_app):
    book_id, (alice,) = seed(file_app, 2, "Alice")

    outcomes = borrow_in_parallel(file_app, [(alice, book_id), (alice, book_id)])

    assert outcomes == ["AlreadyBorrowedError", "borrowed"]
    with file_app.app_context():
        assert db.session.get(Book, book_id).amount == 1
        assert services.members.exists_relationship(book_id, alice)


def test_negative_amount_is_rejected_by_the_store(book_id):
    book = db.session.get(Book, book_id)
    book.amount = -1
    with pytest.raises(IntegrityError):
        db.session.flush()
    db.session.rollback()


def test_take_copy_stops_at_zero(book_id):
    assert services.books.take_copy(book_id)
    assert not services.books.take_copy(book_id)
    db.session.expire_all()
    assert db.session.get(Book, book_id).amount == 0
