# netflow/decode/__init__.py

from .transfer_decoder import TransferDecoder, DecodeStats, classify_direction
