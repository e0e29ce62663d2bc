import logging

from flask import Flask, Blueprint, current_app, jsonify

from config import Config
from models import db
from forms import BookForm, MemberForm
from exceptions import LibraryError, ValidationFailedError
import services

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

api = Blueprint("library_api", __name__, url_prefix="/library-api")


def coordinator():
    return services.BorrowingCoordinator(current_app.config["MEMBER_MAX_BOOK_LIMIT"])


def no_content():
    return "", 204


# ------------------------------------------------------
# BOOKS
# ------------------------------------------------------

@api.route("/books/list")
def list_books():
    return jsonify(services.list_books())


@api.route("/books/<int:book_id>")
def get_book(book_id):
    return jsonify(services.get_book(book_id))


@api.route("/books/all-borrowed-books")
def all_borrowed_books():
    return jsonify(services.all_distinct_borrowed_books())


@api.route("/books/all-borrowed-books-count")
def all_borrowed_books_count():
    return jsonify(services.all_borrowed_books_with_counts())


@api.route("/books", methods=["POST"])
def create_book():
    form = BookForm.from_request().validated()
    return jsonify(services.create_book(form.title.data, form.author.data)), 201


@api.route("/books/<int:book_id>", methods=["PATCH"])
def update_book(book_id):
    form = BookForm.from_request().validated()
    services.update_book(book_id, form.title.data, form.author.data)
    return no_content()


@api.route("/books/<int:book_id>", methods=["DELETE"])
def delete_book(book_id):
    services.delete_book(book_id)
    return no_content()


# ------------------------------------------------------
# MEMBERS
# ------------------------------------------------------

@api.route("/members")
def list_members():
    return jsonify(services.list_members())


@api.route("/members/<name>")
def books_by_member_name(name):
    return jsonify(services.books_by_member_name(name))


@api.route("/members", methods=["POST"])
def create_member():
    form = MemberForm.from_request().validated()
    return jsonify(services.create_member(form.name.data)), 201


@api.route("/members/<int:member_id>")
def get_member(member_id):
    return jsonify(services.get_member(member_id))


@api.route("/members/<int:member_id>", methods=["PATCH"])
def update_member(member_id):
    form = MemberForm.from_request().validated()
    services.update_member(member_id, form.name.data)
    return no_content()


@api.route("/members/<int:member_id>", methods=["DELETE"])
def delete_member(member_id):
    services.delete_member(member_id)
    return no_content()


# ------------------------------------------------------
# BORROW / RETURN
# ------------------------------------------------------

@api.route("/members/<int:member_id>/book/<int:book_id>", methods=["POST"])
def borrow_book(member_id, book_id):
    return jsonify(coordinator().borrow(member_id, book_id)), 201


@api.route("/members/<int:member_id>/book/<int:book_id>", methods=["DELETE"])
def return_book(member_id, book_id):
    coordinator().return_book(member_id, book_id)
    return no_content()


# ------------------------------------------------------
# ERRORS
# ------------------------------------------------------

def handle_validation_failed(error):
    return jsonify(error.messages), error.status_code


def handle_library_error(error):
    return jsonify({"error": str(error)}), error.status_code


# ------------------------------------------------------
# APP FACTORY
# ------------------------------------------------------

def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    if app.config["MEMBER_MAX_BOOK_LIMIT"] < 1:
        raise ValueError("MEMBER_MAX_BOOK_LIMIT must be a positive integer")

    logging.basicConfig(level=app.config["LOG_LEVEL"], format=LOG_FORMAT)
    app.logger.info(
        "Starting library API | db=%s limit=%s",
        app.config["SQLALCHEMY_DATABASE_URI"], app.config["MEMBER_MAX_BOOK_LIMIT"]
    )

    db.init_app(app)
    app.register_blueprint(api)
    app.register_error_handler(ValidationFailedError, handle_validation_failed)
    app.register_error_handler(LibraryError, handle_library_error)

    # Auto-create DB tables
    with app.app_context():
        db.create_all()

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
