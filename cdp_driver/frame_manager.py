"""Frame tracking for a page.

A Frame follows one navigation epoch at a time: the loader id of the
document currently loading in it, and the lifecycle events observed for
that loader. State only changes when the connection dispatches Page
domain events, so callers pump the connection before querying when they
need fresh data.
"""

import logging
import time
from typing import Any, Dict, List, Optional, Set

from .connection import CDPConnection

logger = logging.getLogger(__name__)


class Frame:
    """
    Lifecycle state of one frame.

    Attributes:
        frame_id: CDP frame id
        parent_id: Parent frame id, None for the main frame
        url: Last committed URL
    """

    def __init__(
        self,
        frame_id: str,
        loader_id: Optional[str] = None,
        parent_id: Optional[str] = None,
        url: str = "",
    ):
        self.frame_id = frame_id
        self.parent_id = parent_id
        self.url = url
        self._loader_id = loader_id
        self._lifecycle: Dict[str, float] = {}
        # Loaders this frame has moved past; they never become current again
        self._left_loader_ids: Set[str] = set()

    def get_latest_loader_id(self) -> Optional[str]:
        return self._loader_id

    def get_lifecycle(self) -> Dict[str, float]:
        """Lifecycle events of the current loader, event name -> timestamp."""
        return dict(self._lifecycle)

    def has_lifecycle_event(self, event_name: str) -> bool:
        return event_name in self._lifecycle

    def on_lifecycle_event(
        self, loader_id: str, name: str, timestamp: Optional[float] = None
    ) -> None:
        """Apply a Page.lifecycleEvent.

        "init" with a loader id the frame has not seen yet starts a new
        generation. Other events, and any event for a loader the frame has
        already left, are recorded only for the current loader id.
        """
        if timestamp is None:
            timestamp = time.monotonic()

        if name == "init" and loader_id != self._loader_id:
            self._start_generation(loader_id)

        if loader_id != self._loader_id:
            logger.debug(
                f"Discarding stale lifecycle event {name} for frame {self.frame_id} "
                f"(loader {loader_id}, current {self._loader_id})"
            )
            return

        self._lifecycle[name] = timestamp

    def on_navigated(self, frame_payload: Dict[str, Any]) -> None:
        """Apply the frame object of a Page.frameNavigated event."""
        loader_id = frame_payload.get("loaderId")
        if loader_id in self._left_loader_ids:
            logger.debug(f"Discarding stale navigation of frame {self.frame_id} to loader {loader_id}")
            return
        self.url = frame_payload.get("url", self.url)
        if loader_id and loader_id != self._loader_id:
            self._start_generation(loader_id)

    def _start_generation(self, loader_id: str) -> None:
        if loader_id in self._left_loader_ids:
            logger.debug(
                f"Ignoring loader {loader_id} for frame {self.frame_id}, already replaced"
            )
            return
        if self._loader_id is not None:
            self._left_loader_ids.add(self._loader_id)
        logger.debug(
            f"Frame {self.frame_id} loader changed: {self._loader_id} -> {loader_id}"
        )
        self._loader_id = loader_id
        self._lifecycle = {}

    def __repr__(self):
        return f"Frame(id={self.frame_id!r}, loader={self._loader_id!r}, url={self.url!r})"


class FrameManager:
    """
    Keeps the frames of a page up to date from Page domain events.

    Usage:
        tree = session.send_message_sync(Message("Page.getFrameTree")).get_result_data("frameTree")
        manager = FrameManager(session.get_connection(), tree)
        manager.get_main_frame().get_latest_loader_id()
    """

    def __init__(self, connection: CDPConnection, frame_tree: Dict[str, Any]):
        """
        Build frames from a Page.getFrameTree result and subscribe to updates.

        Args:
            connection: Connection the page events arrive on
            frame_tree: The "frameTree" member of a Page.getFrameTree result

        Raises:
            ValueError: If frame_tree has no frame
        """
        if not frame_tree or "frame" not in frame_tree:
            raise ValueError("Frame tree has no main frame")

        self.connection = connection
        self._frames: Dict[str, Frame] = {}

        main_payload = frame_tree["frame"]
        self._main_frame_id: str = main_payload["id"]
        self._add_tree(frame_tree)

        connection.subscribe("Page.lifecycleEvent", self._on_lifecycle_event)
        connection.subscribe("Page.frameNavigated", self._on_frame_navigated)
        connection.subscribe("Page.frameAttached", self._on_frame_attached)
        connection.subscribe("Page.frameDetached", self._on_frame_detached)

    def get_main_frame(self) -> Frame:
        return self._frames[self._main_frame_id]

    def get_frame(self, frame_id: str) -> Optional[Frame]:
        return self._frames.get(frame_id)

    @property
    def frames(self) -> List[Frame]:
        return list(self._frames.values())

    def close(self) -> None:
        """Stop following page events."""
        self.connection.unsubscribe("Page.lifecycleEvent", self._on_lifecycle_event)
        self.connection.unsubscribe("Page.frameNavigated", self._on_frame_navigated)
        self.connection.unsubscribe("Page.frameAttached", self._on_frame_attached)
        self.connection.unsubscribe("Page.frameDetached", self._on_frame_detached)

    def _add_tree(self, tree: Dict[str, Any]) -> None:
        payload = tree["frame"]
        self._frames[payload["id"]] = Frame(
            payload["id"],
            loader_id=payload.get("loaderId"),
            parent_id=payload.get("parentId"),
            url=payload.get("url", ""),
        )
        for child in tree.get("childFrames", []):
            self._add_tree(child)

    def _on_lifecycle_event(self, params: Dict[str, Any]) -> None:
        frame = self._frames.get(params.get("frameId"))
        if frame is None:
            return
        frame.on_lifecycle_event(
            params.get("loaderId"), params.get("name"), params.get("timestamp")
        )

    def _on_frame_navigated(self, params: Dict[str, Any]) -> None:
        payload = params.get("frame", {})
        frame_id = payload.get("id")
        if not frame_id:
            return
        if payload.get("parentId") is None and frame_id != self._main_frame_id:
            # Cross-process navigation can give the main frame a new id
            main = self._frames.pop(self._main_frame_id)
            main.frame_id = frame_id
            self._main_frame_id = frame_id
            self._frames[frame_id] = main

        frame = self._frames.get(frame_id)
        if frame is None:
            frame = Frame(frame_id, parent_id=payload.get("parentId"))
            self._frames[frame_id] = frame
        frame.on_navigated(payload)

    def _on_frame_attached(self, params: Dict[str, Any]) -> None:
        frame_id = params.get("frameId")
        if frame_id in self._frames:
            return
        self._frames[frame_id] = Frame(frame_id, parent_id=params.get("parentFrameId"))

    def _on_frame_detached(self, params: Dict[str, Any]) -> None:
        frame_id = params.get("frameId")
        if frame_id == self._main_frame_id:
            return
        self._frames.pop(frame_id, None)
        for child in [f for f in self._frames.values() if f.parent_id == frame_id]:
            self._on_frame_detached({"frameId": child.frame_id})
