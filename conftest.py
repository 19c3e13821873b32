# conftest.py
"""
Root pytest configuration.

Loaded before anything under src/ is imported, so the environment set
here is in place when docstore.config reads it.
"""

import os

# Set environment BEFORE importing any app modules
os.environ.setdefault("DOCSTORE_ENV", "test")
