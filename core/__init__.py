"""Core game logic for the arena.

This package contains the pure rules and learning code, with no web
dependencies. Key modules include:

- config: gameplay, learning and server constants
- entities: avatars and collectible stars
- session_state: the authoritative match record and role/phase types
- opponent: the adaptive Q-learning opponent and its persistence

Use direct imports from the submodules; this package keeps no re-exports.
"""
