"""Configuration package for the arena.

Gameplay rules live in ``arena``, learner hyper-parameters in ``learning`` and
process-level defaults in ``server``.
"""
