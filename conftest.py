"""
Repository-level pytest configuration.

Tests live under app/ (added to sys.path by the pytest pythonpath
setting); the Django configuration is in app/conftest.py.
"""

import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
