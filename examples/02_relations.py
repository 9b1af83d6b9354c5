"""
Example 02: Relations and Repositories

This example demonstrates lazy relations with cached id lists, a cache
dependency that invalidates them, and the Repository pattern for
DDD-style code organization.
"""

from aggregate_cache import (
    AggregateRegistry,
    AggregateRepository,
    CallbackDependency,
    Engine,
    MemoryCacheStore,
    MemoryChildStore,
    aggregate,
)


class AuthorRepository(AggregateRepository):
    """Repository for Author aggregates"""

    aggregate_type = "Author"

    def titles(self, author_id):
        """Titles of every book written by an author"""
        return [book.title for book in self.get(author_id).books]


def main():
    store = (
        MemoryChildStore()
        .register("AuthorRow")
        .register("BookRow")
    )
    store.add("AuthorRow", {"id": 1, "name": "Ursula"})
    store.add("BookRow", {"id": 1, "author_id": 1, "title": "The Dispossessed"})
    store.add("BookRow", {"id": 2, "author_id": 1, "title": "The Lathe of Heaven"})

    finder_calls = []

    def find_books(author_id, author):
        finder_calls.append(author_id)
        return [row["id"] for row in store.records("BookRow") if row["author_id"] == author_id]

    def book_count():
        return len(store.records("BookRow"))

    author = (
        aggregate("Author")
        .model("AuthorRow")
        .field("id", "AuthorRow")
        .field("name", "AuthorRow")
        .has_many(
            "books",
            "Book",
            find_books,
            cache_duration=3600,
            cache_dependency=CallbackDependency(book_count),
        )
        .build()
    )
    book = (
        aggregate("Book")
        .model("BookRow")
        .field("id", "BookRow")
        .field("title", "BookRow")
        .field("authorId", "BookRow", "author_id")
        .belongs_to("author", "Author", attribute="authorId")
        .build()
    )

    engine = Engine(AggregateRegistry([author, book]), store, MemoryCacheStore())

    print("=== Relations ===\n")

    repo = AuthorRepository(engine.session())
    print(f"Books: {repo.titles(1)}")
    print(f"Books again: {repo.titles(1)}")
    print(f"Finder calls so far: {len(finder_calls)}")

    # Adding a book changes the dependency, so the cached ids are discarded
    store.add("BookRow", {"id": 3, "author_id": 1, "title": "Always Coming Home"})
    print(f"After insert: {repo.titles(1)}")
    print(f"Finder calls so far: {len(finder_calls)}")

    first = repo.get(1).books.first()
    print(f"\n{first.title!r} was written by {first.author.name}")


if __name__ == "__main__":
    main()
