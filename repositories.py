"""
Data access for books and members.

Thin lookups over the Flask-SQLAlchemy session. No business rules live here;
callers decide what a missing row means. Lookups taking ``for_update`` lock
the selected row until the surrounding transaction ends, on backends that
support ``SELECT ... FOR UPDATE``. Copy counters change through single
conditional UPDATE statements so concurrent writers never overwrite each
other.
"""

from sqlalchemy import func, update

from models import db, Book, Member, member_books


# ------------------------------------------------------
# BOOKS
# ------------------------------------------------------

class BookRepository:

    def find_by_id(self, book_id, for_update=False):
        return db.session.get(Book, book_id, with_for_update=for_update)

    def find_by_title_and_author(self, title, author):
        return Book.query.filter_by(title=title, author=author).first()

    def find_available_by_id(self, book_id, for_update=False):
        query = Book.query.filter(Book.id == book_id, Book.amount > 0)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def list_all(self):
        return Book.query.order_by(Book.id).all()

    def add_copy(self, book_id):
        db.session.execute(
            update(Book)
            .where(Book.id == book_id)
            .values(amount=Book.amount + 1)
            .execution_options(synchronize_session=False)
        )

    def take_copy(self, book_id):
        """Decrement amount in SQL while copies are left. False when none were."""
        result = db.session.execute(
            update(Book)
            .where(Book.id == book_id, Book.amount > 0)
            .values(amount=Book.amount - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def refresh(self, book):
        db.session.refresh(book)
        return book

    def save(self, book):
        db.session.add(book)
        db.session.flush()
        return book

    def delete_by_id(self, book_id):
        Book.query.filter_by(id=book_id).delete()

    def distinct_borrowed_titles(self):
        rows = (
            db.session.query(Book.title)
            .join(member_books, member_books.c.book_id == Book.id)
            .distinct()
            .order_by(Book.title)
            .all()
        )
        return [title for (title,) in rows]

    def borrowed_titles_with_counts(self):
        """(title, number of distinct members holding it) for every borrowed title."""
        rows = (
            db.session.query(Book.title, func.count(func.distinct(member_books.c.member_id)))
            .join(member_books, member_books.c.book_id == Book.id)
            .group_by(Book.title)
            .order_by(Book.title)
            .all()
        )
        return [(title, count) for title, count in rows]


# ------------------------------------------------------
# MEMBERS
# ------------------------------------------------------

class MemberRepository:

    def find_by_id(self, member_id, for_update=False):
        return db.session.get(Member, member_id, with_for_update=for_update)

    def find_by_name(self, name):
        return Member.query.filter_by(name=name).first()

    def exists_by_name(self, name):
        return db.session.query(Member.query.filter_by(name=name).exists()).scalar()

    def exists_with_empty_borrowed_set(self, member_id):
        held = db.session.query(member_books).filter(member_books.c.member_id == member_id)
        return db.session.query(
            Member.query.filter(Member.id == member_id, ~held.exists()).exists()
        ).scalar()

    def exists_relationship(self, book_id, member_id):
        pair = db.session.query(member_books).filter(
            member_books.c.book_id == book_id,
            member_books.c.member_id == member_id,
        )
        return db.session.query(pair.exists()).scalar()

    def list_all(self):
        return Member.query.order_by(Member.id).all()

    def save(self, member):
        db.session.add(member)
        db.session.flush()
        return member

    def delete_by_id(self, member_id):
        Member.query.filter_by(id=member_id).delete()

    def books_borrowed_by_name(self, name):
        return (
            Book.query
            .join(member_books, member_books.c.book_id == Book.id)
            .join(Member, Member.id == member_books.c.member_id)
            .filter(Member.name == name)
            .order_by(Book.id)
            .all()
        )
