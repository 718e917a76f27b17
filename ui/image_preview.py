from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

MIN_SCALE = 0.1
MAX_SCALE = 5.0
ZOOM_STEP = 1.25
ROTATE_STEP = 90

_KEY_ACTIONS = {
    "+": "zoom_in",
    "=": "zoom_in",
    "-": "zoom_out",
    "r": "rotate_right",
    "l": "rotate_left",
    "0": "reset",
}


@dataclass
class ImagePreview:
    """
    View transform of the image overlay: zoom, rotation and drag offset.

    Pure client-side state; the image itself is the already-resolved URL.
    """

    url: str
    name: str = ""
    scale: float = 1.0
    rotation: int = 0
    offset: Tuple[float, float] = (0.0, 0.0)
    _drag_origin: Optional[Tuple[float, float]] = field(default=None, repr=False)

    @property
    def dragging(self) -> bool:
        return self._drag_origin is not None

    @property
    def zoom_label(self) -> str:
        return f"{round(self.scale * 100)}%"

    @property
    def css_transform(self) -> str:
        x, y = self.offset
        return f"translate({x:g}px, {y:g}px) scale({self.scale:g}) rotate({self.rotation}deg)"

    def zoom_in(self) -> None:
        self.scale = min(self.scale * ZOOM_STEP, MAX_SCALE)

    def zoom_out(self) -> None:
        self.scale = max(self.scale / ZOOM_STEP, MIN_SCALE)

    def rotate_left(self) -> None:
        self.rotation = (self.rotation - ROTATE_STEP) % 360

    def rotate_right(self) -> None:
        self.rotation = (self.rotation + ROTATE_STEP) % 360

    def on_wheel(self, delta_y: float) -> None:
        if delta_y < 0:
            self.zoom_in()
        else:
            self.zoom_out()

    def on_key(self, key: str) -> bool:
        """Apply a keyboard shortcut. Returns True when the overlay should close."""
        if key == "Escape":
            return True
        action = _KEY_ACTIONS.get(key)
        if action is not None:
            getattr(self, action)()
        return False

    def download(self) -> Tuple[str, str]:
        """(href, filename) for a save-as link to the previewed image."""
        return self.url, self.name or self.url.split("?", 1)[0].rsplit("/", 1)[-1]

    def reset(self) -> None:
        self.scale = 1.0
        self.rotation = 0
        self.offset = (0.0, 0.0)
        self._drag_origin = None

    # Drag: the pointer position minus the offset at press time is kept so
    # the image follows the pointer without jumping.

    def start_drag(self, x: float, y: float) -> None:
        ox, oy = self.offset
        self._drag_origin = (x - ox, y - oy)

    def drag_to(self, x: float, y: float) -> None:
        if self._drag_origin is None:
            return
        dx, dy = self._drag_origin
        self.offset = (x - dx, y - dy)

    def end_drag(self) -> None:
        self._drag_origin = None
