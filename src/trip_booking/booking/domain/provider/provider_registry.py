from collections.abc import Iterable, Mapping
from types import MappingProxyType

from trip_booking.booking.domain.enum import ComponentType
from trip_booking.booking.domain.provider.provider_adapter import ProviderAdapter
from trip_booking.shared.domain.exception import ProviderException


class ProviderRegistry:
    """コンポーネント種別ごとの利用可能プロバイダと、そのアダプタの対応表

    設定時に一度だけ構築し、以降は変更しない。
    """

    def __init__(
        self,
        catalog: Mapping[str, Iterable[str]],
        adapters: Mapping[str, ProviderAdapter] | None = None,
        default_adapter: ProviderAdapter | None = None,
    ) -> None:
        self._catalog: Mapping[ComponentType, frozenset[str]] = MappingProxyType(
            {
                ComponentType(component_type): frozenset(
                    self._normalize(name) for name in names
                )
                for component_type, names in catalog.items()
            }
        )
        self._adapters: Mapping[str, ProviderAdapter] = MappingProxyType(
            {self._normalize(name): a for name, a in (adapters or {}).items()}
        )
        self._default_adapter = default_adapter

    @staticmethod
    def _normalize(provider: str) -> str:
        return provider.strip().lower()

    def allowed_providers(self, component_type: ComponentType) -> frozenset[str]:
        return self._catalog.get(component_type, frozenset())

    def is_allowed(self, component_type: ComponentType, provider: str) -> bool:
        return self._normalize(provider) in self.allowed_providers(component_type)

    def adapter_for(self, provider: str) -> ProviderAdapter:
        adapter = self._adapters.get(self._normalize(provider), self._default_adapter)
        if adapter is None:
            raise ProviderException(provider, f"No adapter registered for {provider}")
        return adapter

    def to_dict(self) -> dict[str, list[str]]:
        """公開用のプロバイダ一覧"""
        return {t.value: sorted(names) for t, names in self._catalog.items()}
