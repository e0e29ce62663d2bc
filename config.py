import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "library-dev-key")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "library.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Max books a member can hold at the same time
    MEMBER_MAX_BOOK_LIMIT = int(os.environ.get("MEMBER_MAX_BOOK_LIMIT", "10"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
