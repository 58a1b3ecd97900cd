from typing import TypeVar

from ..value_object import IsoDateTime
from .entity import Entity

ID = TypeVar("ID")


class AggregateRoot(Entity[ID]):
    """AggregateRoot 基底クラス

    - 配下のエンティティ（コンポーネント予約）へのアクセスは必ず集約ルートを経由
    - 集約の状態は配下エンティティから導出する
    - 状態を変更する操作は touch() で更新日時を進める
    """

    def __init__(
        self,
        id: ID,
        created_at: IsoDateTime | None = None,
        updated_at: IsoDateTime | None = None,
    ) -> None:
        super().__init__(id)
        self._created_at = created_at or IsoDateTime.now()
        self._updated_at = updated_at or self._created_at

    @property
    def created_at(self) -> IsoDateTime:
        return self._created_at

    @property
    def updated_at(self) -> IsoDateTime:
        return self._updated_at

    def touch(self) -> None:
        self._updated_at = IsoDateTime.now()
