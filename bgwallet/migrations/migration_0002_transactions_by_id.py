import copy
from typing import Any, Dict

MIGRATION = 2


async def migrate(data: Dict[str, Any]) -> Dict[str, Any]:
    state = copy.deepcopy(data)
    transactions = state.get("transactions")
    if not isinstance(transactions, list):
        return state

    transactions_by_id: Dict[str, Any] = {}
    for transaction in transactions:
        transaction_id = transaction["id"]
        transactions_by_id[str(transaction_id)] = transaction
    state["transactions"] = transactions_by_id
    return state
