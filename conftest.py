"""
Root pytest configuration for the Django project.

Sets the environment Django needs before app/conftest.py calls
django.setup(). Tests run against in-memory SQLite unless DATABASE_URL
points elsewhere.
"""

import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://:memory:")
os.environ.setdefault("ALLOWED_HOSTS", "testserver,localhost")
os.environ.setdefault("SECURE_SSL_REDIRECT", "False")
