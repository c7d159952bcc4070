"""
Farm inventory.

Models:
- InventoryItem (per-user supply: seeds, fertilizer, packaging, ...)

Storage usage derived from these rows lives in db.storage.StorageAccount.
"""
