"""Input validation shared by the write-path services.

Every check raises ValidationError before any statement reaches the store.
"""

import logging
from collections import Counter

from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from supplier_directory.core.exceptions import ValidationError
from supplier_directory.core.identifiers import format_identifier, is_valid_identifier
from supplier_directory.schemas.supplier import SupplierInput

logger = logging.getLogger(__name__)

SUPPLIER_NAME_MIN = 2
SUPPLIER_NAME_MAX = 255
SEGMENT_NAME_MIN = 2
SEGMENT_NAME_MAX = 100

_url_adapter = TypeAdapter(AnyUrl)


def validate_name(value: str, *, entity: str, min_len: int, max_len: int) -> str:
    name = (value or "").strip()
    if len(name) < min_len:
        raise ValidationError(f"{entity} name must have at least {min_len} characters")
    if len(name) > max_len:
        raise ValidationError(f"{entity} name must have at most {max_len} characters")
    return name


def validate_logo(value: str | None) -> str | None:
    """Return the logo URL, or None for an empty value."""
    if value is None or not value.strip():
        return None
    logo = value.strip()
    try:
        url = _url_adapter.validate_python(logo)
    except PydanticValidationError:
        raise ValidationError(f"Logo must be a valid absolute URL: '{logo}'") from None
    if not url.host:
        raise ValidationError(f"Logo must be a valid absolute URL: '{logo}'")
    return logo


def canonical_identifiers(values: list[str]) -> list[str]:
    """Validate every identifier and return them in canonical form, order kept."""
    invalid = [v for v in values if not is_valid_identifier(v)]
    if invalid:
        raise ValidationError(
            "Identifiers must have 14 digits or the NN.NNN.NNN/NNNN-NN format: "
            + ", ".join(repr(v) for v in invalid)
        )
    canonical = [format_identifier(v) for v in values]
    duplicates = [v for v, n in Counter(canonical).items() if n > 1]
    if duplicates:
        # Accepted as submitted; nothing dedups them downstream.
        logger.warning("Duplicate identifiers in one submission: %s", ", ".join(duplicates))
    return canonical


def clean_supplier_input(data: SupplierInput) -> SupplierInput:
    """Return a copy of *data* with trimmed name, normalized logo and canonical identifiers."""
    return SupplierInput(
        name=validate_name(
            data.name, entity="Supplier", min_len=SUPPLIER_NAME_MIN, max_len=SUPPLIER_NAME_MAX
        ),
        logo=validate_logo(data.logo),
        identifiers=canonical_identifiers(data.identifiers),
        segment_ids=list(data.segment_ids),
    )
