"""Display strings for compliance reports.

Every function here is total: optional fields that are missing are left
out of the output instead of raising.
"""

from datetime import date, datetime

from backend.services.report_records import (
    ApplicationRecord,
    ApplicatorInfo,
    CustomerInfo,
    WeatherSnapshot,
)

NOT_RECORDED = "Not recorded"


def _num(value: float) -> str:
    """Render a number without a trailing '.0' for whole values."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _hour12(dt: datetime) -> str:
    hour = dt.hour % 12 or 12
    meridiem = "AM" if dt.hour < 12 else "PM"
    return f"{hour}:{dt.minute:02d} {meridiem}"


def format_short_date(d: date) -> str:
    """``Jan 15, 2024``"""
    return f"{d.strftime('%b')} {d.day}, {d.year}"


def format_datetime(dt: datetime) -> str:
    """``Mon, Jan 15, 2024 2:30 PM``"""
    return f"{dt.strftime('%a')}, {format_short_date(dt)} {_hour12(dt)}"


def format_date_range(start: date, end: date) -> str:
    """``Jan 15, 2024 - Jan 31, 2024``"""
    return f"{format_short_date(start)} - {format_short_date(end)}"


def format_long_date(day_key: str) -> str:
    """Banner date for an ISO day key, e.g. ``Monday, January 15, 2024``."""
    d = date.fromisoformat(day_key)
    return f"{d.strftime('%A')}, {d.strftime('%B')} {d.day}, {d.year}"


def format_weather(weather: WeatherSnapshot) -> str:
    parts = []
    if weather.temperature is not None:
        parts.append(f"{_num(weather.temperature)}°F")
    if weather.humidity is not None:
        parts.append(f"{_num(weather.humidity)}% humidity")
    if weather.wind_speed is not None:
        wind = f"Wind {_num(weather.wind_speed)} mph"
        if weather.wind_direction:
            wind += f" {weather.wind_direction}"
        parts.append(wind)
    if weather.condition:
        parts.append(weather.condition)
    return ", ".join(parts) if parts else NOT_RECORDED


def format_applicator(applicator: ApplicatorInfo) -> str:
    name = f"{applicator.first_name} {applicator.last_name}"
    if applicator.license_number and applicator.license_state:
        return f"{name} (License: {applicator.license_state}-{applicator.license_number})"
    if applicator.license_number:
        return f"{name} (License: {applicator.license_number})"
    return name


def format_chemical(record: ApplicationRecord) -> str:
    if record.epa_number:
        return f"{record.chemical_name} (EPA# {record.epa_number})"
    return record.chemical_name


def format_amount(record: ApplicationRecord) -> str:
    return f"{_num(record.amount)} {record.unit}"


def format_area(record: ApplicationRecord) -> str | None:
    if record.area_treated is None or not record.area_unit:
        return None
    return f"{_num(record.area_treated)} {record.area_unit}"


def format_consent(consent: bool) -> str:
    return "Yes" if consent else "No"


def format_address(customer: CustomerInfo) -> str:
    return f"{customer.address}, {customer.city}, {customer.state} {customer.zip_code}"


def format_location(customer: CustomerInfo) -> str:
    return f"{customer.name}, {customer.address}, {customer.city}"
