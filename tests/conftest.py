# tests/conftest.py
import datetime as _dt
import os
import tempfile
from pathlib import Path
from typing import Any, List, Optional, Tuple

import pytest

# config creates its directories at import time; keep them out of the source tree
_TMP_ROOT = tempfile.mkdtemp(prefix="teleload-tests-")
os.environ.setdefault("DATA_DIR", _TMP_ROOT)
os.environ.setdefault("TMP_DIR", str(Path(_TMP_ROOT) / "tmp"))

from teleload.errors import DeliveryFailed  # noqa: E402

NOW = _dt.datetime(2026, 10, 19, 12, 0, 0)


def make_user(**overrides) -> dict:
    doc = {
        "user_id": "1001",
        "username": "alice",
        "first_name": "Alice",
        "is_pro": False,
        "trial_start": NOW - _dt.timedelta(hours=1),
        "pro_end": None,
        "referred_by": None,
        "referral_count": 0,
        "language": "en",
    }
    doc.update(overrides)
    return doc


class FakeMessage:
    def __init__(self, message_id: int):
        self.message_id = message_id


class FakeTransport:
    """Records every delivery call; `fail_on` names methods that raise DeliveryFailed."""

    def __init__(self, lang: str = "en", fail_on: Tuple[str, ...] = ()):
        self.lang = lang
        self.bot_username = "teleload_bot"
        self.fail_on = set(fail_on)
        self.calls: List[Tuple[str, Any]] = []
        self._next_id = 100

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail_on:
            raise DeliveryFailed(f"{name}: simulated")

    def names(self) -> List[str]:
        return [c[0] for c in self.calls]

    def texts(self, name: str) -> List[str]:
        return [c[1] for c in self.calls if c[0] == name]

    async def send_text(self, text: str, reply_markup: Any = None):
        self._maybe_fail("send_text")
        self._next_id += 1
        self.calls.append(("send_text", text))
        return FakeMessage(self._next_id)

    async def edit_text(self, message, text: str, reply_markup: Any = None):
        self._maybe_fail("edit_text")
        self.calls.append(("edit_text", text))

    async def delete(self, message):
        self._maybe_fail("delete")
        self.calls.append(("delete", message.message_id))

    async def send_video(self, url: str, caption: str, reply_markup: Any = None):
        self._maybe_fail("send_video")
        self.calls.append(("send_video", {"url": url, "caption": caption, "reply_markup": reply_markup}))
        return FakeMessage(999)

    async def send_photo_group(self, items, caption: Optional[str] = None):
        self._maybe_fail("send_photo_group")
        self.calls.append(("send_photo_group", {"items": list(items), "caption": caption}))

    async def send_audio(self, path, filename: str, caption: str):
        self._maybe_fail("send_audio")
        self.calls.append(("send_audio", {"path": Path(path), "exists": Path(path).exists(), "filename": filename}))

    async def answer_action(self, text: Optional[str] = None):
        self.calls.append(("answer_action", text))


class FakeStore:
    def __init__(self):
        self.downloads: List[dict] = []

    async def record_download(self, user_id: str, url: str, is_watermarked: bool):
        doc = {"user_id": user_id, "video_url": url, "is_watermarked": is_watermarked}
        self.downloads.append(doc)
        return doc


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def scratch_dir(tmp_path):
    d = tmp_path / "scratch"
    d.mkdir()
    return d
