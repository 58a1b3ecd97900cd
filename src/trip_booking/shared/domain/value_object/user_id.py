from dataclasses import dataclass


@dataclass(frozen=True)
class UserId:
    """利用者ID

    認証済みリクエストの JWT `sub` クレーム。予約の所有者判定に使用する。
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError("UserId cannot be empty")

    def __str__(self) -> str:
        return self.value
