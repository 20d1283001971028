from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from lxml.html import HtmlElement

from .models import LocalFile

logger = logging.getLogger(__name__)


@dataclass
class UIEvent:
    """A user-interface event delivered to an :class:`EventTarget`.

    ``files`` carries the data-transfer payload of drag and drop events; it is
    ``None`` when something other than files (e.g. a page element) is dragged.
    """

    type: str
    files: Optional[Sequence[LocalFile]] = None
    data: Dict[str, str] = field(default_factory=dict)
    default_prevented: bool = False
    propagation_stopped: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True

    def stop_propagation(self) -> None:
        self.propagation_stopped = True


Handler = Callable[[UIEvent], None]


class EventTarget:
    """Binds event handlers to one page element."""

    def __init__(self, element: HtmlElement) -> None:
        self.element = element
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def on(self, event_types: str, handler: Handler) -> None:
        for event_type in event_types.split():
            self._handlers[event_type].append(handler)

    def off(self, event_type: Optional[str] = None) -> None:
        if event_type is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event_type, None)

    def trigger(self, event: UIEvent) -> UIEvent:
        for handler in list(self._handlers.get(event.type, ())):
            handler(event)
        return event


def stop_event(event: UIEvent) -> None:
    """Suppress the browser's default file handling and stop bubbling."""
    event.prevent_default()
    event.stop_propagation()


# A file picker receives the callback to invoke with the user's selection.
FilePicker = Callable[[Callable[[Sequence[LocalFile]], None]], None]


def no_file_picker(on_select: Callable[[Sequence[LocalFile]], None]) -> None:
    logger.info("No file picker configured; click on the drop-zone ignored")
