from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class Currency:
    """プロバイダ料金の通貨コード（ISO 4217）

    予約の合計金額は単一通貨で集計する。未指定の場合は USD。
    """

    SUPPORTED: ClassVar[frozenset[str]] = frozenset({"USD", "EUR", "GBP", "JPY"})
    DEFAULT: ClassVar[str] = "USD"

    code: str

    def __post_init__(self) -> None:
        normalized = self.code.strip().upper()
        if normalized not in self.SUPPORTED:
            raise ValueError(
                f"Unsupported currency: {self.code}. "
                f"Supported: {', '.join(sorted(self.SUPPORTED))}"
            )
        object.__setattr__(self, "code", normalized)

    def __str__(self) -> str:
        return self.code

    @classmethod
    def default(cls) -> Currency:
        return cls(cls.DEFAULT)

    @classmethod
    def usd(cls) -> Currency:
        return cls("USD")

    @classmethod
    def jpy(cls) -> Currency:
        return cls("JPY")
