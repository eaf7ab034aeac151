"""
Example 02: Finders

This example demonstrates built-in, custom and dynamic finders, plus
converting results into dataclasses and JSON.
"""

from row_mapper import Finder, MapperConfig, MemoryBackend, Repository
from dataclasses import dataclass


@dataclass
class PostSummary:
    """Read model for post listings"""
    id: int
    title: str


def recent(options, meta):
    """Custom finder: newest first, ten per page"""
    return {"order": {"created": "DESC"}, "limit": 10, **options}


def main():
    backend = MemoryBackend({
        "posts": [
            {"title": "Hello", "author": "michael", "created": 1, "published": 1},
            {"title": "Draft", "author": "anna", "created": 3, "published": 0},
            {"title": "Follow-up", "author": "michael", "created": 2, "published": 1},
        ]
    })

    posts = Repository(
        MapperConfig(
            source="posts",
            finders={
                "published": {"conditions": {"published": 1}},
                "recent": recent,
                "titles": Finder("titles", query=lambda options, meta: {**options, "fields": ["title"]}),
            },
        ),
        backend,
    )

    print("=== Built-in finders ===")
    print(f"  all:   {[p.title for p in posts.find('all')]}")
    print(f"  first: {posts.find('first', order='created DESC').title}")
    print(f"  count: {posts.find('count', conditions={'author': 'michael'})}")
    print(f"  list:  {posts.find('list')}")

    print("\n=== Custom finders ===")
    print(f"  published: {[p.title for p in posts.find('published')]}")
    print(f"  recent:    {[p.title for p in posts.find('recent')]}")
    print(f"  titles:    {posts.find('titles').data()}")

    print("\n=== Dynamic finders ===")
    print(f"  findAllByAuthor:   {[p.title for p in posts.findAllByAuthor('michael')]}")
    print(f"  findByTitle:       {posts.findByTitle('Draft').author}")
    print(f"  find_count_by_published: {posts.find_count_by_published(1)}")
    print(f"  findRecentByAuthor: {[p.title for p in posts.findRecentByAuthor('michael')]}")

    print("\n=== Conversion ===")
    print(f"  dataclasses: {posts.find('published').to(PostSummary)}")
    print(f"  json: {posts.find('first').to('json')}")

    print("\n✓ Finders example complete!")


if __name__ == "__main__":
    main()
