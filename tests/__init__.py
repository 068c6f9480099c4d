"""
Test Suite for Task Brain

- Task store, registry and ID generation
- Archive / unarchive
- Knowledge extraction, handoffs, ADRs and wiki updates
- Conflict detection
- HTTP router
"""
