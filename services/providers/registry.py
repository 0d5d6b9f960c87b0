# services/providers/registry.py
from typing import Dict, Optional

import requests

from config import ProviderConfig
from services.providers.async_poll_provider import AsyncPollProvider
from services.providers.base import ProviderAdapter
from services.providers.multi_step_provider import MultiStepProvider
from services.providers.sync_provider import SyncProvider
from services.providers.vision_provider import VisionProvider
from utils.exceptions import ProviderConfigError

ADAPTERS: Dict[str, type] = {
    "sync": SyncProvider,
    "async_poll": AsyncPollProvider,
    "multi_step": MultiStepProvider,
    "vision": VisionProvider,
}


def build_adapter(config: ProviderConfig, session: Optional[requests.Session] = None) -> ProviderAdapter:
    """Pick the adapter for the configured mode. Called once at startup."""
    adapter_cls = ADAPTERS.get(config.mode)
    if adapter_cls is None:
        raise ProviderConfigError(
            f"Unknown provider mode '{config.mode}' (expected one of: {', '.join(ADAPTERS)})"
        )
    return adapter_cls(config, session=session)
