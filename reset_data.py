"""
Wipe the local rental ledger data file (users, vehicles and rentals).

Development helper only. Pass a path to clear a data file other than the
default ``data.pkl`` at the project root:

    $ python reset_data.py [path/to/data.pkl]

Run ``python seeds.py`` afterwards for a fresh demo fleet.
"""
import sys

from rentalledger.models.store import Store


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    store = Store(argv[0]) if argv else Store.instance()

    counts = {name: len(docs) for name, docs in
              (("users", store.users), ("vehicles", store.vehicles), ("rentals", store.rentals))}
    store.clear()

    print(f"Cleared {store.path}: " + ", ".join(f"{n} {name}" for name, n in counts.items()))


if __name__ == "__main__":
    main()
