from flask_sqlalchemy import SQLAlchemy
from datetime import date

db = SQLAlchemy()

# One row per (member, book) pair: the member currently holds one copy
member_books = db.Table(
    "member_books",
    db.Column("member_id", db.Integer, db.ForeignKey("member.id"), primary_key=True),
    db.Column("book_id", db.Integer, db.ForeignKey("book.id"), primary_key=True),
)


class Book(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    author = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Integer, nullable=False, default=1)

    # Read-only index over member_books; Member.borrowed_books owns the writes
    borrowers = db.relationship(
        "Member", secondary=member_books, viewonly=True, lazy="select"
    )

    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_book_amount_not_negative"),
    )

    def to_dict(self):
        return {"title": self.title, "author": self.author, "amount": self.amount}

    def __repr__(self):
        return f"<Book {self.id} {self.title!r} by {self.author!r} x{self.amount}>"


class Member(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    creation_date = db.Column(db.Date, nullable=False, default=date.today)

    borrowed_books = db.relationship(
        "Book", secondary=member_books, lazy="select"
    )

    def to_dict(self):
        return {"name": self.name, "creationDate": self.creation_date.isoformat()}

    def __repr__(self):
        return f"<Member {self.id} {self.name!r}>"
