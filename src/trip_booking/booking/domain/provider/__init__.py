from .provider_adapter import ProviderAdapter as ProviderAdapter
from .provider_registry import ProviderRegistry as ProviderRegistry
