"""Touchline source package.

Engagement cadence engine: decides when each contact should next be
engaged and keeps that date current as sends, replies and pipeline moves
come in.

Layers:
    - core: Configuration, logging, exceptions, task pool
    - db: Database, models
    - engine: Business logic (cadence, history, reminders, alerts)
    - autonomous: Triggers and background sweeps
"""

__version__ = "0.1.0"
