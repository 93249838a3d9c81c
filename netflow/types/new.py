# netflow/types/new.py

from typing import NewType


HexStr = NewType('HexStr', str)
EvmAddress = NewType('EvmAddress', str)
EvmHash = NewType('EvmHash', str)
BlockNumber = NewType('BlockNumber', int)
