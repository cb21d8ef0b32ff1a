import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from portfolio.utils.date_utils import to_utc_datetime

# JSON names that do not follow plain camelCase
WIRE_NAME_OVERRIDES = {
    "savings_omr": "savingsOMR",
}


def to_wire_name(field_name: str) -> str:
    return WIRE_NAME_OVERRIDES.get(field_name) or to_camel(field_name)


def enum_value(value: Any) -> Optional[Any]:
    return getattr(value, "value", value)


class BaseDTO(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_wire_name,
    )

    @classmethod  # every DTO maps its ORM model explicitly
    def from_orm_model(cls, orm_obj):
        """
        Subclasses must override.
        """
        raise NotImplementedError(
            f"{cls.__name__}.from_orm_model() must be implemented"
        )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class BaseInput(BaseModel):
    """Request body parser: accepts camelCase or snake_case keys, ignores unknown keys."""

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_wire_name,
        extra="ignore",
    )

    def to_columns(self) -> dict:
        '''Only the fields the client actually sent, keyed by column name.'''
        return self.model_dump(exclude_unset=True)


# ======================================================
# 🔧 Field coercion used by the *Input models
# ======================================================

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    # NaN coming from spreadsheets
    return isinstance(value, float) and value != value


def coerce_number(value: Any) -> Optional[float]:
    '''"1,200.50" -> 1200.5, "" -> None; anything else non-numeric raises ValueError.'''
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValueError("must be a number")
    if isinstance(value, str):
        value = value.replace(",", "").strip()
    number = float(value)
    if not math.isfinite(number):
        raise ValueError("must be a finite number")
    return number


def coerce_int(value: Any) -> Optional[int]:
    number = coerce_number(value)
    if number is None:
        return None
    return int(round(number))


def coerce_text(value: Any) -> Optional[str]:
    if _is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return value


def coerce_date(value: Any):
    '''Normalize any date-like value to an aware UTC datetime; unknown shapes become None.'''
    if _is_blank(value):
        return None
    return to_utc_datetime(value)
