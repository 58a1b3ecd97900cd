class DomainException(Exception):
    """ドメイン層で発生する基底例外"""

    pass


class ValidationException(DomainException):
    """リクエストの形式が不正な場合（オーケストレーション開始前に拒否）"""

    pass


class ResourceNotFoundException(DomainException):
    """リソースが見つからない場合"""

    pass


class OwnershipException(DomainException):
    """リソースは存在するが、要求者が所有者ではない場合"""

    pass


class BusinessRuleViolationException(DomainException):
    """ビジネスルールに違反した場合"""

    pass


class ProviderException(DomainException):
    """外部プロバイダ呼び出しの失敗

    1コンポーネント分の失敗であり、Executor 内で FAILED に変換される。
    """

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider


class PersistenceException(DomainException):
    """永続化の失敗"""

    pass


class DuplicateResourceException(PersistenceException):
    """リソースの重複エラー（条件付き書き込みの失敗時）"""

    pass


class OptimisticLockException(DomainException):
    """楽観ロックの競合エラー（ステータスが期待値と異なる場合）"""

    pass
