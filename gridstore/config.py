"""Configuration settings for the bundled document store backends."""

import os


DATABASE_PATH = os.environ.get("GRIDSTORE_DATABASE_PATH", "./data/gridstore.db")
