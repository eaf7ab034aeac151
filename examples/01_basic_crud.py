"""
Example 01: Basic CRUD

This example demonstrates creating, finding, updating and deleting entities
through a Repository backed by SQLite.
"""

from row_mapper import ConnectionConfig, MapperConfig, Repository, SqlBackend
import tempfile


def main():
    # Create a temporary database
    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    backend = SqlBackend.from_config(ConnectionConfig(driver="sqlite", database=db_path))
    backend.execute_raw("""
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT NOT NULL,
            active INTEGER DEFAULT 1
        )
    """)

    users = Repository(MapperConfig(source="users", title="name"), backend)

    # Create and save
    print("=== Create ===")
    for name in ("Alice", "Bob", "Charlie"):
        user = users.create({"name": name, "email": f"{name.lower()}@example.com"})
        user.save()
        print(f"  Saved {user.name} with id {user.id}")

    # Find
    print("\n=== Find ===")
    for user in users.find("all", order="name DESC"):
        print(f"  {user.id}: {user.name} <{user.email}>")
    print(f"  First active: {users.find('first', conditions={'active': 1}).name}")
    print(f"  Count: {users.find('count')}")
    print(f"  List: {users.find('list')}")

    # Update one entity: only modified fields are written
    print("\n=== Update ===")
    bob = users.find_by_key(2)
    bob.email = "bob@work.example.com"
    print(f"  Modified fields: {bob.modified}")
    bob.save()
    print(f"  Reloaded: {users.find_by_key(2).email}")

    # Bulk update
    users.update({"active": 0}, {"name": ["Alice", "Charlie"]})
    print(f"  Active users: {users.find('count', conditions={'active': 1})}")

    # Delete
    print("\n=== Delete ===")
    print(f"  Deleted Bob: {bob.delete()}")
    print(f"  Deleted again: {bob.delete()}")
    users.remove({"active": 0})
    print(f"  Remaining: {users.find('count')}")

    backend.close()
    print("\n✓ CRUD example complete!")


if __name__ == "__main__":
    main()
