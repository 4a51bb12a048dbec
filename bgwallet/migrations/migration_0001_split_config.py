import copy
from typing import Any, Dict

MIGRATION = 1

DEFAULT_PROVIDER = { "type": "mainnet" }


async def migrate(data: Dict[str, Any]) -> Dict[str, Any]:
    # The original layout kept everything under `config`. The network provider now lives with the
    # network state and the selected account is a user preference.
    state = copy.deepcopy(data)
    config = state.pop("config", None)
    if config is None:
        return state

    network = state.setdefault("network", {})
    network.setdefault("provider", config.get("provider", DEFAULT_PROVIDER))

    preferences = state.setdefault("preferences", {})
    if "selected_account" in config:
        preferences.setdefault("selected_address", config["selected_account"])
    return state
