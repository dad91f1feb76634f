"""Provider gateways and gateway selection."""
from medaid.config import settings
from medaid.gateways.base import ProviderGateway
from medaid.gateways.http import HttpProviderGateway
from medaid.gateways.simulated import SimulatedProviderGateway
from medaid.schemas.provider import ProviderConfig


def get_gateway(provider: ProviderConfig) -> ProviderGateway:
    """
    Choose the gateway for a provider.

    ``PROVIDER_GATEWAY_MODE`` forces one implementation for every provider;
    in ``auto`` mode test-mode providers are simulated and live providers
    are called over HTTP.
    """
    mode = settings.PROVIDER_GATEWAY_MODE
    if mode == "simulated":
        return SimulatedProviderGateway()
    if mode == "http":
        return HttpProviderGateway()
    if provider.test_mode:
        return SimulatedProviderGateway()
    return HttpProviderGateway()


__all__ = [
    "ProviderGateway",
    "HttpProviderGateway",
    "SimulatedProviderGateway",
    "get_gateway",
]
