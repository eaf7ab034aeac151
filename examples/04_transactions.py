"""
Example 04: Transactions

This example demonstrates grouping mapper writes in a transaction with
automatic commit/rollback.
"""

from row_mapper import ConnectionConfig, MapperConfig, Repository, SqlBackend
import tempfile


def main():
    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    backend = SqlBackend.from_config(ConnectionConfig(driver="sqlite", database=db_path))
    backend.execute_raw(
        "CREATE TABLE accounts (id INTEGER PRIMARY KEY, owner TEXT NOT NULL, balance INTEGER NOT NULL)"
    )
    accounts = Repository(MapperConfig(source="accounts", title="owner"), backend)
    accounts.create({"owner": "Alice", "balance": 100}).save()
    accounts.create({"owner": "Bob", "balance": 50}).save()

    def show(label):
        balances = {a.owner: a.balance for a in accounts.find("all", order="id")}
        print(f"  {label}: {balances}")

    show("start")

    # Successful transfer: both writes commit together
    alice, bob = accounts.find_by_key(1), accounts.find_by_key(2)
    with accounts.transaction() as tx:
        alice.balance -= 30
        bob.balance += 30
        alice.save(transaction=tx)
        bob.save(transaction=tx)
        print(f"  Alice inside the transaction: {accounts.find_by_key(1, transaction=tx).balance}")
    show("after transfer")

    # Failed transfer: the exception rolls both writes back
    try:
        with accounts.transaction() as tx:
            accounts.update({"balance": 0}, {"owner": "Alice"}, transaction=tx)
            raise RuntimeError("insufficient funds check failed")
    except RuntimeError as e:
        print(f"  rolled back: {e}")
    show("after rollback")

    backend.close()
    print("\n✓ Transactions example complete!")


if __name__ == "__main__":
    main()
