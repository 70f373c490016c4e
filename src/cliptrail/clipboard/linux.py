import hashlib
import logging
import os
import shutil
import subprocess
import threading
from typing import List, Optional
from urllib.parse import unquote, urlparse

from cliptrail.clipboard.base import ClipboardContent, ClipboardProvider

logger = logging.getLogger(__name__)


class LinuxClipboard(ClipboardProvider):
    """Clipboard through ``wl-paste``/``wl-copy`` or ``xclip``.

    Neither tool exposes a change counter, so one is synthesized: each
    ``change_count`` call snapshots the selection and bumps the counter when
    the snapshot digest differs from the previous one.
    """

    _FILE_TARGETS = ("x-special/gnome-copied-files", "text/uri-list")
    _IMAGE_TARGETS = ("image/png", "image/jpeg", "image/bmp", "image/webp", "image/tiff")
    _TEXT_TARGETS = ("text/plain;charset=utf-8", "utf8_string", "text/plain", "string")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0
        self._digest: Optional[str] = None
        self._snapshot = ClipboardContent()
        if os.environ.get("WAYLAND_DISPLAY") and shutil.which("wl-paste"):
            self._backend = "wayland"
        elif shutil.which("xclip"):
            self._backend = "xclip"
        else:
            raise RuntimeError("Neither wl-paste nor xclip is available")

    # ---------------------------------------------------------------------
    # Provider port
    # ---------------------------------------------------------------------
    def change_count(self) -> int:
        snapshot = self._read_snapshot()
        digest = self._digest_of(snapshot)
        with self._lock:
            if digest != self._digest:
                self._digest = digest
                self._snapshot = snapshot
                self._count += 1
            return self._count

    def read_content(self) -> ClipboardContent:
        with self._lock:
            return self._snapshot

    def write_content(self, content: ClipboardContent) -> bool:
        if content.text is not None:
            return self._write("text/plain;charset=utf-8", content.text.encode("utf-8"))
        if content.image is not None:
            return self._write("image/png", bytes(content.image))
        if content.file_urls:
            uris = "\n".join(self._as_uri(path) for path in content.file_urls)
            return self._write("text/uri-list", uris.encode("utf-8"))
        return False

    # ---------------------------------------------------------------------
    # Reading
    # ---------------------------------------------------------------------
    def _read_snapshot(self) -> ClipboardContent:
        types = self._parse_type_list(self._list_types())
        if not types:
            return ClipboardContent()
        lowered = {t.lower(): t for t in types}

        text = None
        for target in self._TEXT_TARGETS:
            if target in lowered:
                data = self._read(lowered[target])
                if data:
                    text = data.decode("utf-8", errors="ignore")
                    break

        image = None
        for target in self._IMAGE_TARGETS:
            if target in lowered:
                image = self._read(lowered[target]) or None
                if image:
                    break

        file_urls: List[str] = []
        for target in self._FILE_TARGETS:
            if target in lowered:
                data = self._read(lowered[target])
                if data:
                    file_urls = self._parse_paths(data)
                    if file_urls:
                        break

        # text/uri-list also satisfies text/plain on most desktops
        if file_urls and text is not None:
            if unquote(text.strip()) in {*file_urls, *(self._as_uri(p) for p in file_urls)}:
                text = None

        return ClipboardContent(text=text, image=image, file_urls=tuple(file_urls))

    @staticmethod
    def _digest_of(content: ClipboardContent) -> str:
        digest = hashlib.sha256()
        digest.update((content.text or "").encode("utf-8"))
        digest.update(b"\0")
        digest.update(content.image or b"")
        digest.update(b"\0")
        digest.update("\n".join(content.file_urls).encode("utf-8"))
        return digest.hexdigest()

    def _list_types(self) -> Optional[bytes]:
        if self._backend == "wayland":
            return self._run_command(["wl-paste", "--list-types"], timeout=1.5)
        return self._run_command(["xclip", "-selection", "clipboard", "-t", "TARGETS", "-o"], timeout=1.5)

    def _read(self, target: str) -> Optional[bytes]:
        if self._backend == "wayland":
            command = ["wl-paste", "--type", target]
            if target.lower().startswith("text/"):
                command.append("--no-newline")
            return self._run_command(command, timeout=1.5)
        return self._run_command(["xclip", "-selection", "clipboard", "-t", target, "-o"], timeout=1.5)

    @staticmethod
    def _parse_type_list(data: Optional[bytes]) -> List[str]:
        if not data:
            return []
        text = data.decode("utf-8", errors="ignore")
        return [line.strip() for line in text.splitlines() if line.strip()]

    @staticmethod
    def _parse_paths(data: bytes) -> List[str]:
        text = data.decode("utf-8", errors="ignore")
        lines = [line.strip() for line in text.replace("\r", "\n").split("\n") if line.strip()]
        if lines and lines[0].lower() in {"copy", "cut"}:
            lines = lines[1:]

        paths = []
        for entry in lines:
            if entry.startswith("#"):
                continue
            parsed = urlparse(entry)
            if parsed.scheme == "file":
                paths.append(unquote(parsed.path))
            elif not parsed.scheme:
                paths.append(unquote(entry))
        return paths

    # ---------------------------------------------------------------------
    # Writing
    # ---------------------------------------------------------------------
    @staticmethod
    def _as_uri(path: str) -> str:
        if path.startswith("file://"):
            return path
        return "file://" + path

    def _write(self, mime: str, payload: bytes) -> bool:
        if self._backend == "wayland":
            command = ["wl-copy", "--type", mime]
        else:
            command = ["xclip", "-selection", "clipboard", "-t", mime]
        try:
            subprocess.run(command, input=payload, check=True, timeout=2.0)
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError) as e:
            logger.error("Clipboard write failed (%s): %s", mime, e)
            return False
        return True

    def _run_command(self, command: List[str], timeout: float) -> Optional[bytes]:
        try:
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
                timeout=timeout,
            )
            return result.stdout
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError):
            return None
