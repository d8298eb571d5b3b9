"""Device-width emulation for the rendering surface."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class DeviceClass(Enum):
    WIDE = "wide"
    MEDIUM = "medium"
    NARROW = "narrow"

    @property
    def width(self) -> Optional[int]:
        return DEVICE_WIDTHS[self]

    @property
    def label(self) -> str:
        return {"wide": "Desktop", "medium": "Tablet", "narrow": "Mobile"}[self.value]


DEVICE_WIDTHS = {
    DeviceClass.WIDE: None,
    DeviceClass.MEDIUM: 768,
    DeviceClass.NARROW: 390,
}


class ViewportEmulator:
    """Holds the active device class. Changing it never touches the ledger."""

    def __init__(self, device: DeviceClass | str = DeviceClass.WIDE,
                 on_change: Optional[Callable[[DeviceClass], None]] = None) -> None:
        self.device = DeviceClass(device)
        self.on_change = on_change

    @property
    def width(self) -> Optional[int]:
        return self.device.width

    def set_device(self, device: DeviceClass | str) -> DeviceClass:
        device = DeviceClass(device)
        if device is not self.device:
            self.device = device
            logger.debug("viewport: %s (%s)", device.value, device.width or "full width")
            if self.on_change is not None:
                self.on_change(device)
        return device

    def frame_style(self) -> str:
        """Inline style for the element that frames the surface."""
        if self.width is None:
            return "width: 100%; max-width: 100%; margin: 0 auto;"
        return f"width: {self.width}px; max-width: 100%; margin: 0 auto;"
