"""
tests.unit
==========

Per-module unit tests for ``access_control``. Shared fixtures live in
``tests/conftest.py``.
"""
