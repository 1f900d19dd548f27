"""Autonomous operations package.

Keeps stored next engagement dates current without anyone asking.

Modules:
    - triggers: Recompute hooks fired by sends, reply matches and stage changes
    - sweep: Scheduled recompute over every (or every stale) contact
"""
