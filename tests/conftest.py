import pytest

from app import create_app
from config import Config
from models import db
import services


class TestingConfig(Config):
    __test__ = False

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    MEMBER_MAX_BOOK_LIMIT = 10
    LOG_LEVEL = "WARNING"


@pytest.fixture
def app():
    # Fresh in-memory database for every test
    app = create_app(TestingConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def coordinator(app):
    return services.BorrowingCoordinator(app.config["MEMBER_MAX_BOOK_LIMIT"])


@pytest.fixture
def book_id(app):
    """A single copy of "Title" by "Author"."""
    services.create_book("Title", "Author")
    return services.books.find_by_title_and_author("Title", "Author").id


@pytest.fixture
def member_id(app):
    services.create_member("Alice")
    return services.members.find_by_name("Alice").id
