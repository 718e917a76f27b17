"""
Derived views over a flat object listing.

Folders do not exist in the store; they are reconstructed here from "/" in
keys (and from common prefixes returned by non-recursive listings). Nothing
in this module talks to the network.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp", "bmp", "svg", "ico"})
VIDEO_EXTENSIONS = frozenset({"mp4", "webm", "mov", "avi", "mkv", "flv", "wmv"})
AUDIO_EXTENSIONS = frozenset({"mp3", "wav", "ogg", "flac", "aac"})
TEXT_EXTENSIONS = frozenset({"txt", "md", "json", "xml", "csv", "log", "js", "ts", "css", "html"})


class FileKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    TEXT = "text"
    DEFAULT = "default"


class MediaFilter(str, Enum):
    ALL = "all"
    IMAGES = "images"
    VIDEOS = "videos"

    @property
    def is_media(self) -> bool:
        return self is not MediaFilter.ALL


def extension(name: str) -> str:
    base = (name or "").rsplit("/", 1)[-1]
    if "." not in base:
        return ""
    return base.rsplit(".", 1)[-1].lower()


def file_kind(name: str) -> FileKind:
    ext = extension(name)
    if ext in IMAGE_EXTENSIONS:
        return FileKind.IMAGE
    if ext in VIDEO_EXTENSIONS:
        return FileKind.VIDEO
    if ext in AUDIO_EXTENSIONS:
        return FileKind.AUDIO
    if ext in TEXT_EXTENSIONS:
        return FileKind.TEXT
    return FileKind.DEFAULT


def is_image(name: str) -> bool:
    return extension(name) in IMAGE_EXTENSIONS


def is_video(name: str) -> bool:
    return extension(name) in VIDEO_EXTENSIONS


def _parse_time(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


@dataclass(frozen=True)
class BrowserItem:
    name: str
    display_name: str
    is_folder: bool
    size: int = 0
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None

    @property
    def kind(self) -> FileKind:
        return file_kind(self.display_name)

    @classmethod
    def file(cls, entry: Dict[str, Any], display_name: str) -> "BrowserItem":
        return cls(
            name=entry["name"],
            display_name=display_name,
            is_folder=False,
            size=int(entry.get("size") or 0),
            last_modified=_parse_time(entry.get("lastModified")),
            etag=entry.get("etag"),
        )


def folder_view(entries: Iterable[Dict[str, Any]], prefix: str) -> List[BrowserItem]:
    """
    Immediate subfolders then immediate files of one prefix level.

    Folders come from common-prefix markers and from keys that continue past
    the prefix with another "/"; they are deduplicated by first segment and
    sorted by name. Files are sorted by display name. The prefix's own
    placeholder object is skipped.
    """
    prefix = prefix or ""
    folders = set()
    files: List[BrowserItem] = []

    for entry in entries:
        marker = entry.get("prefix")
        if marker:
            if not marker.startswith(prefix):
                continue
            folder = marker[len(prefix):].rstrip("/")
            if folder and "/" not in folder:
                folders.add(folder)
            continue

        name = entry.get("name")
        if not name or name == prefix or not name.startswith(prefix):
            continue
        relative = name[len(prefix):]
        if "/" in relative:
            first = relative.split("/", 1)[0]
            if first:
                folders.add(first)
        else:
            files.append(BrowserItem.file(entry, relative))

    items = [
        BrowserItem(name=f"{prefix}{folder}/", display_name=folder, is_folder=True)
        for folder in sorted(folders)
    ]
    items.extend(sorted(files, key=lambda f: f.display_name))
    return items


def _recency(item: BrowserItem) -> float:
    if item.last_modified is None:
        return -math.inf
    return item.last_modified.timestamp()


def media_view(entries: Iterable[Dict[str, Any]], media: MediaFilter) -> List[BrowserItem]:
    """Every image (or video) in the bucket regardless of folder, newest first."""
    matches = is_image if media is MediaFilter.IMAGES else is_video
    items = [
        BrowserItem.file(entry, entry["name"].rsplit("/", 1)[-1])
        for entry in entries
        if entry.get("name") and not entry["name"].endswith("/") and matches(entry["name"])
    ]
    items.sort(key=_recency, reverse=True)
    return items


def breadcrumbs(prefix: str) -> List[Tuple[str, str]]:
    """[(label, prefix)] from the bucket root down to prefix."""
    crumbs = [("", "")]
    path = ""
    for part in (prefix or "").split("/"):
        if not part:
            continue
        path = f"{path}{part}/"
        crumbs.append((part, path))
    return crumbs


_SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]


def format_size(num_bytes: Optional[int]) -> str:
    if not num_bytes:
        return "0 B"
    value = float(num_bytes)
    i = 0
    while value >= 1024 and i < len(_SIZE_UNITS) - 1:
        value /= 1024
        i += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[i]}"
