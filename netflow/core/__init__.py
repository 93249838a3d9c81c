# netflow/core/__init__.py
