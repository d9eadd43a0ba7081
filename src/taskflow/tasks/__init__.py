"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Subtask, drafts/patches) + JSON boundary
- validation.py: form validation for new tasks and edits
- transitions.py: pure optimistic-update state machine
- task_store.py: the store (single source of truth, lock-serialized mutations)
- projection.py: search/filter/sort and derived views (stats, categories, tags)
- snapshot.py: local JSON snapshot of the collection
"""
