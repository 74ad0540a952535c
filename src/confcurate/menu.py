"""Application menu owned by the back end.

Activating an item sends a one-way notification on its channel; the front end
decides what to do with it. Notifications carry no payload and expect no reply.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from confcurate.errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("confcurate.menu")

NEW_CONFERENCE = "menu-new-conference"
OPEN_REPO = "menu-open-repo"
SYNC_WEBSITE = "menu-sync-website"
VALIDATE_DATA = "menu-validate-data"

MENU_CHANNELS = (NEW_CONFERENCE, OPEN_REPO, SYNC_WEBSITE, VALIDATE_DATA)


@dataclass(frozen=True)
class MenuItem:
    section: str
    label: str
    channel: str
    accelerator: str = ""


MENU: tuple[MenuItem, ...] = (
    MenuItem("File", "New Conference", NEW_CONFERENCE, "CmdOrCtrl+N"),
    MenuItem("File", "Open Website Repo", OPEN_REPO, "CmdOrCtrl+O"),
    MenuItem("Tools", "Sync with Website", SYNC_WEBSITE, "CmdOrCtrl+S"),
    MenuItem("Tools", "Validate Data", VALIDATE_DATA),
)


def normalize_channel(name: str) -> str:
    """Accept 'validate-data' or 'menu-validate-data'; reject anything else."""
    channel = name if name.startswith("menu-") else f"menu-{name}"
    if channel not in MENU_CHANNELS:
        msg = f"Unknown menu action: {name}"
        raise ValidationError(msg)
    return channel


class MenuBar:
    """Routes menu activations to a notification sender."""

    def __init__(self, send: Callable[[str], None]) -> None:
        self._send = send

    def activate(self, name: str) -> None:
        channel = normalize_channel(name)
        logger.info("menu activated: %s", channel)
        self._send(channel)

    def press(self, accelerator: str) -> bool:
        """Activate the item bound to accelerator. Returns False if none is."""
        for item in MENU:
            if item.accelerator and item.accelerator.lower() == accelerator.lower():
                self.activate(item.channel)
                return True
        return False
