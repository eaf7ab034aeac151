"""
Example 03: Validation and Hooks

This example demonstrates field rules scoped to events, whitelisted saves
and lifecycle hooks.
"""

from row_mapper import MapperConfig, MemoryBackend, Repository, Rule, configure_logging
from datetime import datetime, timezone


def stamp(entity, options):
    """before_save hook: keep an updated timestamp"""
    entity.updated = datetime.now(timezone.utc).isoformat()


def announce(entity, options):
    """after_save hook"""
    print(f"  [hook] saved user {entity.id}")


def main():
    configure_logging(level="INFO")

    users = Repository(
        MapperConfig(
            source="users",
            title="name",
            rules={
                "name": [
                    Rule("not_empty", "Please enter a name."),
                    Rule("length_between", "Name is too long.", params={"max": 20}),
                ],
                "email": [("email", "Invalid email address.", {"skip_empty": True})],
                "password": [("not_empty", "Password is required.", {"on": "create"})],
            },
            hooks={"before_save": [stamp], "after_save": [announce]},
        ),
        MemoryBackend(),
    )

    print("=== Invalid entity ===")
    user = users.create({"name": "", "email": "not-an-email"})
    print(f"  saved: {user.save()}")
    for field, messages in user.errors.items():
        print(f"  {field}: {messages}")

    print("\n=== Fix and save ===")
    user.set({"name": "Alice", "email": "alice@example.com", "password": "s3cret"})
    print(f"  saved: {user.save()}, errors: {user.errors}")

    print("\n=== Update event skips create-only rules ===")
    user["password"] = ""
    print(f"  saved: {user.save()}")

    print("\n=== Whitelist ===")
    user.name = ""
    user.email = "alice@work.example.com"
    print(f"  saved email only: {user.save(whitelist=['email'])}")
    print(f"  still modified: {user.modified}")

    print("\n=== Bulk update skips validation ===")
    users.update({"name": ""}, {"id": user.id})
    print(f"  stored name: {users.find_by_key(user.id).name!r}")

    print("\n✓ Validation example complete!")


if __name__ == "__main__":
    main()
