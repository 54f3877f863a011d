"""Record store: bounded in-memory collections with write-through persistence.

Layout:
    store/
    ├── models.py         # User, Item, ConsumptionRecord, PaymentRecord, UptimeClock
    ├── aggregation.py    # Available stock, overview, stock levels, balances
    ├── integrity.py      # Cascade deletes for removed users/items
    ├── codec.py          # JSON document <-> StoreState, schema-validated per field
    ├── backend.py        # PersistenceBackend protocol, MemoryBackend, FileBackend
    └── record_store.py   # RecordStore: CRUD, capacity bounds, persistence

The whole store lives in one JSON document under a single backend key.
"""
