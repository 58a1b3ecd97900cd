from dataclasses import dataclass


@dataclass(frozen=True)
class TripId:
    """旅行ID（全サービス共通）

    旅行提案（trip suggestion）の正の整数ID。
    同じ値を持つ TripId は同一とみなされる。
    """

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValueError(f"TripId must be an integer: {self.value!r}")
        if self.value <= 0:
            raise ValueError("TripId must be positive")

    def __str__(self) -> str:
        return str(self.value)
