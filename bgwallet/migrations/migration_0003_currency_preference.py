import copy
from typing import Any, Dict

MIGRATION = 3

DEFAULT_CURRENCY = "usd"


async def migrate(data: Dict[str, Any]) -> Dict[str, Any]:
    state = copy.deepcopy(data)
    preferences = state.setdefault("preferences", {})
    preferences.setdefault("currency", DEFAULT_CURRENCY)
    return state
