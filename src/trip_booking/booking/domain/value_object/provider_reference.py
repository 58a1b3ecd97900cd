import re
from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class ProviderReference:
    """プロバイダ側の予約参照番号

    プロバイダ名 + タイムスタンプ（ミリ秒）+ ランダムな6文字の形式。
    例: SKYSCANNER-1735689600000-k3j9x2
    """

    value: str

    PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^[A-Z0-9]+-\d+-[a-z0-9]{6}$")

    def __post_init__(self) -> None:
        if not self.PATTERN.match(self.value):
            raise ValueError(f"Invalid provider reference format: {self.value}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ConfirmationNumber:
    """確認番号

    例: CN-7HX2K9QLM
    """

    value: str

    PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^CN-[A-Z0-9]{9}$")

    def __post_init__(self) -> None:
        if not self.PATTERN.match(self.value):
            raise ValueError(f"Invalid confirmation number format: {self.value}")

    def __str__(self) -> str:
        return self.value
