"""
Example 01: Entity Queries

This example declares a small entity graph and queries it with EntityQuery:
foreign keys are joined automatically and every row comes back as a nested
object graph.
"""

from __future__ import annotations

import sqlite3
import tempfile
from dataclasses import dataclass

from entity_query import (
    BaseEntity,
    ConnectionConfig,
    Engine,
    IdentifiableEnum,
    col,
    foreign_key,
)


class Genre(IdentifiableEnum):
    FICTION = 1
    SCIENCE = 2


@dataclass
class Author(BaseEntity, table="authors"):
    name: str | None = None


@dataclass
class Book(BaseEntity, table="books"):
    title: str | None = None
    author_id: int | None = None
    author: Author | None = foreign_key("author_id")
    genre_id: int | None = None
    genre: Genre | None = foreign_key("genre_id")


def main():
    # Create a temporary database
    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE authors (id INTEGER PRIMARY KEY, name TEXT NOT NULL);
        CREATE TABLE books (
            id INTEGER PRIMARY KEY,
            title TEXT NOT NULL,
            author_id INTEGER NOT NULL,
            genre_id INTEGER
        );
        INSERT INTO authors (name) VALUES ('Tolkien'), ('Herbert');
        INSERT INTO books (title, author_id, genre_id) VALUES
            ('The Hobbit', 1, 1), ('Dune', 2, 2), ('Children of Dune', 2, 2);
    """)
    conn.commit()
    conn.close()

    engine = Engine.from_config(ConnectionConfig(driver="sqlite", database=db_path))

    print("=== Entity Queries ===\n")

    query = engine.query(Book).where(col("author.name") == "Herbert").order_by(col("title").desc())
    print(f"SQL: {query.sql}\n")

    for book in query.to_list():
        print(f"{book.title} by {book.author.name} ({book.genre.name})")

    # first(): None when nothing matches
    print(f"\nfirst() on no match: {engine.query(Book).where(col('title') == 'Emma').first()}")

    # count() and limit/offset
    print(f"Science books: {engine.query(Book).where(col('genre') == Genre.SCIENCE).count()}")
    page = engine.query(Book).order_by("id").limit(1, offset=1).to_list()
    print(f"Second book: {page[0].title}")

    # stream(): lazy mapping, close it when stopping early
    with engine.query(Book).order_by("id").stream() as books:
        print(f"Streamed first: {next(books).title}")

    engine.connection_manager.close_pool()


if __name__ == "__main__":
    main()
