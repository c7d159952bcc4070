"""
Cold/dry storage accounting.

- classifier: inventory category / crop name -> StorageClass
- volume: quantity -> abstract volume units
- accounts: StorageAccount reads, locking, manual overrides, atomic units of work
- ledger: incremental deltas from inventory and harvest events
- recalculation: full repair from the current inventory snapshot
- alerts: low-stock and capacity threshold alerts, computed on read
"""
