# Services package init
"""
Trame Backend — Services Layer
===============================

What:  Business logic between routes (HTTP) and the database (persistence).
How:   Services receive the request's AsyncSession and return schema objects.

Service Inventory:
    - block_scanner: text → ordered blocks (pure)
    - content_hash: block text → 32-hex digest; `hash_blocks` (pure)
    - reconciler: carries block identity across edits; per-document locks
    - block_store: SqlBlockStore, the persistence adapter for documents/blocks
    - NoteService: get / update / list blocks of the caller's note
    - AuthService: signup, login, logout, bearer-token resolution
"""
