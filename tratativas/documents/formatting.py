"""Date and time display formats used on the disciplinary document."""

from datetime import date, datetime, time

_WEEKDAYS = (
    "segunda-feira",
    "terça-feira",
    "quarta-feira",
    "quinta-feira",
    "sexta-feira",
    "sábado",
    "domingo",
)

_MONTHS = (
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
)


def format_display_date(value: date | None) -> str:
    """``date(2025, 4, 4)`` -> ``"04/04/2025"``."""
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def format_long_date(value: date | None) -> str:
    """``date(2025, 4, 4)`` -> ``"sexta-feira, 04 de abril de 2025"``."""
    if value is None:
        return ""
    weekday = _WEEKDAYS[value.weekday()]
    month = _MONTHS[value.month - 1]
    return f"{weekday}, {value.day:02d} de {month} de {value.year}"


def format_display_time(value: time | str | None) -> str:
    """Render a stored time as ``HH:MM``; strings pass through trimmed."""
    if value is None:
        return ""
    if isinstance(value, time):
        return value.strftime("%H:%M")
    return value.strip()


def parse_form_date(value: str) -> date:
    """Parse the intake form's ``DD/MM/YYYY`` (or ISO) date.

    Raises:
        ValueError: if the string matches neither format.
    """
    value = value.strip()
    for fmt in ("%d/%m/%Y", "%Y-%m-%d"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date '{value}', expected DD/MM/YYYY")
