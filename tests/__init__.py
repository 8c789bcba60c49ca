"""
Test suite for the CSV import wizard.

Run all tests: pytest
Run with coverage: pytest --cov=. --cov-report=html
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_mapping_engine.py -v
"""
