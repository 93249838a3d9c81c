# netflow/database/types.py

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.types import TypeDecorator

from ..types import EvmAddress, EvmHash, format_amount, parse_amount


class EvmAddressType(TypeDecorator):
    impl = String(42)
    cache_ok = True

    def process_bind_param(self, value: Optional[str], dialect) -> Optional[str]:
        return str(value).lower() if value else None

    def process_result_value(self, value: Optional[str], dialect) -> Optional[EvmAddress]:
        return EvmAddress(value) if value else None


class EvmHashType(TypeDecorator):
    impl = String(66)
    cache_ok = True

    def process_bind_param(self, value: Optional[str], dialect) -> Optional[str]:
        return str(value).lower() if value else None

    def process_result_value(self, value: Optional[str], dialect) -> Optional[EvmHash]:
        return EvmHash(value) if value else None


class DecimalString(TypeDecorator):
    """Exact decimals stored as canonical strings, never as floats."""
    impl = String(128)
    cache_ok = True

    def process_bind_param(self, value, dialect) -> Optional[str]:
        if value is None:
            return None
        return format_amount(value)

    def process_result_value(self, value: Optional[str], dialect) -> Optional[Decimal]:
        if value is None:
            return None
        return parse_amount(value)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes, including on SQLite which drops tzinfo."""
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
