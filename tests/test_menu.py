"""Tests for confcurate.menu."""

import pytest

from confcurate.errors import ValidationError
from confcurate.menu import MENU, MENU_CHANNELS, MenuBar, normalize_channel


class TestMenu:
    def test_every_item_has_a_known_channel(self):
        assert {item.channel for item in MENU} == set(MENU_CHANNELS)

    def test_normalize_accepts_short_and_full_names(self):
        assert normalize_channel("validate-data") == "menu-validate-data"
        assert normalize_channel("menu-open-repo") == "menu-open-repo"

    def test_normalize_rejects_unknown(self):
        with pytest.raises(ValidationError):
            normalize_channel("quit")

    def test_activate_sends_channel(self):
        sent = []
        MenuBar(sent.append).activate("new-conference")
        assert sent == ["menu-new-conference"]

    def test_press_accelerator(self):
        sent = []
        bar = MenuBar(sent.append)
        assert bar.press("cmdorctrl+s")
        assert not bar.press("CmdOrCtrl+Q")
        assert sent == ["menu-sync-website"]
