from unittest.mock import MagicMock

from bgwallet.notifications import NotificationManager, PopupTrigger

from .util import PopupState, RecordingPlatform


POPUP_URL = "https://bgwallet.example/popup.html"


def test_show_popup_opens_url() -> None:
    platform = RecordingPlatform()
    NotificationManager(platform, POPUP_URL).show_popup()
    assert platform.opened_urls == [ POPUP_URL ]


def test_show_popup_failure_is_not_raised() -> None:
    platform = RecordingPlatform(result=False)
    NotificationManager(platform, POPUP_URL).show_popup()
    assert platform.opened_urls == [ POPUP_URL ]


def test_trigger_ui_opens_popup_when_closed() -> None:
    notification_manager = MagicMock()
    PopupTrigger(PopupState(False), notification_manager).trigger_ui()
    notification_manager.show_popup.assert_called_once_with()


def test_trigger_ui_does_nothing_when_open() -> None:
    notification_manager = MagicMock()
    PopupTrigger(PopupState(True), notification_manager).trigger_ui()
    notification_manager.show_popup.assert_not_called()


def test_trigger_ui_reads_current_popup_state() -> None:
    popup_state = PopupState(False)
    platform = RecordingPlatform()
    trigger = PopupTrigger(popup_state, NotificationManager(platform, POPUP_URL))

    trigger.trigger_ui()
    popup_state.popup_is_open = True
    trigger.trigger_ui()
    trigger.trigger_ui()
    popup_state.popup_is_open = False
    trigger.trigger_ui()

    assert platform.opened_urls == [ POPUP_URL, POPUP_URL ]
