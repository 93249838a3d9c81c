# netflow/aggregate/__init__.py

from .aggregator import aggregate_netflow
