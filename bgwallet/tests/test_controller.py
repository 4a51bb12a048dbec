import asyncio
from typing import Any, List
from unittest.mock import MagicMock

import pytest

from bgwallet.constants import ControllerEvent, PendingCountEvent, RPCErrorCode, \
    TRUSTED_PROTOCOL_LABEL
from bgwallet.controller import WalletController

from .util import MockChannel, RecordingPlatform


INITIAL_STATE = {
    "network": { "provider": { "type": "mainnet" } },
    "preferences": { "currency": "usd", "selected_address": "0xabc" },
}


@pytest.fixture
def callbacks() -> MagicMock:
    return MagicMock()


@pytest.fixture
def controller(callbacks: MagicMock) -> WalletController:
    return WalletController(init_state=INITIAL_STATE, platform=RecordingPlatform(),
        on_unconfirmed_message=callbacks.on_unconfirmed_message,
        on_unlock_request=callbacks.on_unlock_request,
        on_unapproved_tx=callbacks.on_unapproved_tx)


async def yield_to_tasks() -> None:
    for _i in range(3):
        await asyncio.sleep(0)


def attach_untrusted(controller: WalletController, origin: str="dapp.example") -> MockChannel:
    channel = MockChannel("contentscript", f"https://{origin}/")
    controller.setup_untrusted_communication(channel, origin)
    return channel


def test_initial_state_is_copied(controller: WalletController) -> None:
    assert controller.get_state() == INITIAL_STATE
    state = controller.get_state()
    state["preferences"]["currency"] = "eur"
    assert controller.get_state() == INITIAL_STATE


def test_update_state_notifies(controller: WalletController) -> None:
    updates: List[Any] = []
    controller.events.register_callback(lambda event, state: updates.append(state),
        [ ControllerEvent.STATE_UPDATED ])
    controller.update_state({ "preferences": { "currency": "eur" } })
    assert updates == [ { **INITIAL_STATE, "preferences": { "currency": "eur" } } ]


def test_pending_counts_start_empty(controller: WalletController) -> None:
    assert controller.get_pending_counts() == (0, 0, 0, 0)


@pytest.mark.asyncio
async def test_trusted_channel_gets_state_and_updates(controller: WalletController) -> None:
    channel = MockChannel("popup")
    controller.setup_trusted_communication(channel, TRUSTED_PROTOCOL_LABEL)
    await yield_to_tasks()
    assert channel.sent == [ { "method": "state_updated", "params": INITIAL_STATE } ]

    response = await channel.request("set_preference", { "key": "currency", "value": "eur" })
    assert response["result"]["currency"] == "eur"
    await yield_to_tasks()
    assert channel.sent[-1]["method"] == "state_updated"
    assert channel.sent[-1]["params"]["preferences"]["currency"] == "eur"

    # Nothing more is pushed once the channel is gone.
    channel.notify_disconnected()
    sent_count = len(channel.sent)
    controller.update_state({ "other": 1 })
    await yield_to_tasks()
    assert len(channel.sent) == sent_count


@pytest.mark.asyncio
async def test_unknown_method(controller: WalletController) -> None:
    channel = attach_untrusted(controller)
    response = await channel.request("get_state", request_id=7)
    assert response == { "id": 7, "error": { "code": RPCErrorCode.METHOD_NOT_FOUND,
        "message": "Method 'get_state' not found" } }


@pytest.mark.asyncio
async def test_invalid_params(controller: WalletController) -> None:
    channel = attach_untrusted(controller)
    response = await channel.request("sign_message", [ "not", "an", "object" ])
    assert response["error"]["code"] == RPCErrorCode.INVALID_PARAMS


@pytest.mark.asyncio
async def test_request_accounts_while_locked(controller: WalletController,
        callbacks: MagicMock) -> None:
    channel = attach_untrusted(controller)
    response = await channel.request("request_accounts")
    assert response["error"]["code"] == RPCErrorCode.WALLET_LOCKED
    callbacks.on_unlock_request.assert_called_once_with()


@pytest.mark.asyncio
async def test_request_accounts_while_unlocked(controller: WalletController,
        callbacks: MagicMock) -> None:
    popup = MockChannel("popup")
    controller.setup_trusted_communication(popup, TRUSTED_PROTOCOL_LABEL)
    assert (await popup.request("unlock"))["result"] == { "is_unlocked": True }
    assert controller.is_unlocked

    channel = attach_untrusted(controller)
    response = await channel.request("request_accounts")
    assert response == { "id": 1, "result": [ "0xabc" ] }
    callbacks.on_unlock_request.assert_not_called()

    await popup.request("lock")
    assert not controller.is_unlocked


@pytest.mark.asyncio
async def test_send_transaction_queues_and_triggers(controller: WalletController,
        callbacks: MagicMock) -> None:
    counts: List[Any] = []
    controller.events.register_callback(lambda event, count: counts.append((event, count)),
        [ PendingCountEvent.TRANSACTIONS ])

    channel = attach_untrusted(controller, "shop.example")
    response = await channel.request("send_transaction", { "from": "0xabc", "to": "0xdef" })
    pending_id = response["result"]["pending_id"]

    callbacks.on_unapproved_tx.assert_called_once_with()
    assert controller.get_pending_counts() == (1, 0, 0, 0)
    assert counts == [ (PendingCountEvent.TRANSACTIONS, 1) ]

    popup = MockChannel("popup")
    controller.setup_trusted_communication(popup, TRUSTED_PROTOCOL_LABEL)
    listing = (await popup.request("list_pending"))["result"]
    assert listing["transactions"] == [ { "id": pending_id, "origin": "shop.example",
        "params": { "from": "0xabc", "to": "0xdef" } } ]

    response = await popup.request("approve", { "id": pending_id })
    assert response["result"] == { "id": pending_id, "status": "approved" }
    assert controller.get_pending_counts() == (0, 0, 0, 0)
    assert counts[-1] == (PendingCountEvent.TRANSACTIONS, 0)


@pytest.mark.asyncio
async def test_send_transaction_requires_from(controller: WalletController,
        callbacks: MagicMock) -> None:
    channel = attach_untrusted(controller)
    response = await channel.request("send_transaction", { "to": "0xdef" })
    assert response["error"]["code"] == RPCErrorCode.INVALID_PARAMS
    callbacks.on_unapproved_tx.assert_not_called()
    assert controller.get_pending_counts() == (0, 0, 0, 0)


@pytest.mark.asyncio
@pytest.mark.parametrize("method,counts", [
    ("sign_message", (0, 1, 0, 0)),
    ("sign_personal_message", (0, 0, 1, 0)),
    ("sign_typed_data", (0, 0, 0, 1)),
])
async def test_message_signing_requests(controller: WalletController, callbacks: MagicMock,
        method: str, counts: Any) -> None:
    channel = attach_untrusted(controller)
    response = await channel.request(method, { "data": "0x1234" })
    assert "pending_id" in response["result"]
    assert controller.get_pending_counts() == counts
    callbacks.on_unconfirmed_message.assert_called_once_with()


@pytest.mark.asyncio
async def test_reject_and_unknown_item(controller: WalletController) -> None:
    channel = attach_untrusted(controller)
    first = (await channel.request("sign_message", { "data": "a" }))["result"]["pending_id"]
    second = (await channel.request("sign_typed_data", { "data": "b" }))["result"]["pending_id"]
    assert first != second

    popup = MockChannel("popup")
    controller.setup_trusted_communication(popup, TRUSTED_PROTOCOL_LABEL)
    response = await popup.request("reject", { "id": second })
    assert response["result"] == { "id": second, "status": "rejected" }
    assert controller.get_pending_counts() == (0, 1, 0, 0)

    response = await popup.request("reject", { "id": second })
    assert response["error"]["code"] == RPCErrorCode.UNKNOWN_PENDING_ITEM
    response = await popup.request("approve", { "id": "1" })
    assert response["error"]["code"] == RPCErrorCode.INVALID_PARAMS


@pytest.mark.asyncio
async def test_open_url(controller: WalletController) -> None:
    popup = MockChannel("popup")
    controller.setup_trusted_communication(popup, TRUSTED_PROTOCOL_LABEL)
    response = await popup.request("open_url", { "url": "https://explorer.example/tx/1" })
    assert response["result"] is True
    assert controller.platform.opened_urls == [ "https://explorer.example/tx/1" ] # type: ignore

    response = await popup.request("open_url", { "url": "javascript:alert(1)" })
    assert response["error"]["code"] == RPCErrorCode.INVALID_PARAMS


@pytest.mark.asyncio
async def test_handler_failure_is_answered(controller: WalletController,
        callbacks: MagicMock) -> None:
    callbacks.on_unconfirmed_message.side_effect = RuntimeError("ui broken")
    channel = attach_untrusted(controller)
    response = await channel.request("sign_message", { "data": "a" })
    assert response["error"]["code"] == RPCErrorCode.INTERNAL_ERROR


@pytest.mark.asyncio
async def test_reply_to_closed_channel_is_dropped(controller: WalletController) -> None:
    channel = attach_untrusted(controller)
    await channel.close()
    await channel.dispatch_message({ "id": 1, "method": "sign_message", "params": { "data": "a" } })
    assert channel.sent == []
    assert controller.get_pending_counts() == (0, 1, 0, 0)
