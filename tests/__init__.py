"""Touchline Test Suite.

Test organization mirrors the touchline/ package:
    tests/
    ├── conftest.py             # Shared fixtures
    ├── test_core/              # Config, logging, exceptions, tasks
    ├── test_db/                # Database and model tests
    ├── test_engine/            # Cadence and business logic tests
    ├── test_autonomous/        # Trigger and sweep tests
    └── test_run_touchline.py   # Command-line entry point

Markers:
    - @pytest.mark.slow: Tests taking > 1 second
    - @pytest.mark.database: Tests requiring database
    - @pytest.mark.concurrency: Tests that run threads
"""
