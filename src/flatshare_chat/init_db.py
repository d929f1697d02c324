"""Create the chat tables on the configured database."""

from flatshare_chat.core.settings import settings
from flatshare_chat.db.session import create_tables


def init_db() -> None:
    """Initialize the database by creating all tables."""
    create_tables()


if __name__ == "__main__":
    init_db()
    print(f"Database initialized at {settings.database_url}.")
