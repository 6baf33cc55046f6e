"""
Inventory ledger.

Models:
- InventoryItem (one owner, unique SKU, current quantity)
- StockMovement (append-only deltas recorded after each confirmed quantity change)
"""
