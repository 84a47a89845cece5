import uuid

from core.exceptions import ValidationError


def parse_object_id(value, field: str = "id") -> str:
    """
    Parse a client-supplied identifier into the canonical UUID string used as
    primary key everywhere.

    Raises:
        ValidationError: value is empty or not a UUID
    """
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    try:
        return str(uuid.UUID(str(value).strip()))
    except ValueError:
        raise ValidationError(f"Invalid {field}")
