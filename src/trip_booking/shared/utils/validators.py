from decimal import Decimal, InvalidOperation


def to_decimal(v: object) -> Decimal:
    """任意の値を Decimal に変換する

    Pydantic の field_validator (mode="before") から呼び出すことを想定。
    変換できない値は ValueError とし、Pydantic の ValidationError として扱わせる。
    """
    if isinstance(v, Decimal):
        return v
    if isinstance(v, bool):
        raise ValueError(f"Not a decimal value: {v!r}")
    try:
        value = Decimal(str(v))
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal value: {v!r}") from e
    if not value.is_finite():
        raise ValueError(f"Not a finite decimal value: {v!r}")
    return value
