"""
tests/test_resolver.py

Provider ordering, fail-soft behaviour and response normalization.
"""

import asyncio

import aiohttp
import pytest

from teleload.errors import ProviderError
from teleload.resolver import (
    NOT_FOUND,
    Photo,
    PhotoSet,
    Provider,
    Resolver,
    TiklydownProvider,
    TikwmProvider,
    Video,
    build_providers,
    pick_media,
)

SRC = "https://vm.tiktok.com/ZMabc123/"


class StubProvider(Provider):
    """Returns a fixed result (or raises) without looking at the payload."""

    def __init__(self, name, result=NOT_FOUND, exc=None):
        self.name = name
        self.endpoint = f"https://{name}.example/api"
        self._result = result
        self._exc = exc

    def normalize(self, payload, prefer_video=True):
        if self._exc:
            raise self._exc
        return self._result


class RecordingFetch:
    def __init__(self, fail_for=()):
        self.calls = []
        self.fail_for = set(fail_for)

    async def __call__(self, url, params=None, timeout=15):
        self.calls.append((url, params, timeout))
        if url in self.fail_for:
            raise aiohttp.ClientError("boom")
        return {}


class TestOrdering:
    async def test_first_success_wins_and_later_providers_are_skipped(self):
        a = StubProvider("a", NOT_FOUND)
        b = StubProvider("b", Video(url="x"))
        c = StubProvider("c", Video(url="never"))
        fetch = RecordingFetch()
        media = await Resolver([a, b, c], fetch=fetch).resolve(SRC)

        assert media == Video(url="x")
        assert [u for u, _, _ in fetch.calls] == [a.endpoint, b.endpoint]

    async def test_provider_exception_moves_to_next(self):
        a = StubProvider("a")
        b = StubProvider("b", PhotoSet(items=(Photo("p1"),)))
        fetch = RecordingFetch(fail_for={a.endpoint})
        media = await Resolver([a, b], fetch=fetch).resolve(SRC)
        assert isinstance(media, PhotoSet)

    async def test_normalize_error_moves_to_next(self):
        a = StubProvider("a", exc=KeyError("data"))
        b = StubProvider("b", Video(url="ok"))
        media = await Resolver([a, b], fetch=RecordingFetch()).resolve(SRC)
        assert media == Video(url="ok")

    async def test_all_failing_returns_not_found(self):
        a = StubProvider("a", exc=ProviderError("a", "bad"))
        b = StubProvider("b")
        fetch = RecordingFetch(fail_for={b.endpoint})
        assert await Resolver([a, b], fetch=fetch).resolve(SRC) is NOT_FOUND

    async def test_timeout_is_a_provider_failure(self):
        async def slow_fetch(url, params=None, timeout=15):
            raise asyncio.TimeoutError()

        assert await Resolver([StubProvider("a", Video(url="x"))], fetch=slow_fetch).resolve(SRC) is NOT_FOUND

    async def test_source_url_and_timeout_are_passed(self):
        fetch = RecordingFetch()
        await Resolver([StubProvider("a")], fetch=fetch, timeout=7).resolve(SRC)
        assert fetch.calls == [("https://a.example/api", {"url": SRC}, 7)]

    async def test_no_providers(self):
        assert await Resolver([], fetch=RecordingFetch()).resolve(SRC) is NOT_FOUND


class TestTiklydown:
    def test_video(self):
        payload = {"video": {"noWatermark": "https://cdn/v.mp4", "title": "hello #fyp"}}
        assert TiklydownProvider().normalize(payload) == Video(url="https://cdn/v.mp4", title="hello #fyp")

    def test_images_as_dicts(self):
        payload = {"images": [{"url": "https://cdn/1.jpg"}, {"url": "https://cdn/2.jpg"}], "title": "carousel"}
        media = TiklydownProvider().normalize(payload)
        assert media == PhotoSet(items=(Photo("https://cdn/1.jpg"), Photo("https://cdn/2.jpg")), title="carousel")

    def test_video_without_title(self):
        media = TiklydownProvider().normalize({"video": {"noWatermark": "https://cdn/v.mp4"}})
        assert media == Video(url="https://cdn/v.mp4", title="")

    def test_empty_payload_is_not_found(self):
        assert TiklydownProvider().normalize({"video": {}, "images": []}) is NOT_FOUND

    def test_non_dict_payload_raises(self):
        with pytest.raises(ProviderError):
            TiklydownProvider().normalize(["nope"])


class TestTikwm:
    def test_relative_play_url_is_absolutized(self):
        payload = {"code": 0, "data": {"play": "/video/media/play/abc.mp4", "title": "t"}}
        assert TikwmProvider().normalize(payload) == Video(url="https://tikwm.com/video/media/play/abc.mp4", title="t")

    def test_absolute_play_url_kept(self):
        payload = {"data": {"play": "https://v16.cdn/abc.mp4"}}
        assert TikwmProvider().normalize(payload).url == "https://v16.cdn/abc.mp4"

    def test_images_as_strings(self):
        payload = {"data": {"images": ["https://i/1.jpg", "", "https://i/2.jpg"], "title": "pics"}}
        media = TikwmProvider().normalize(payload)
        assert isinstance(media, PhotoSet)
        assert [p.url for p in media.items] == ["https://i/1.jpg", "https://i/2.jpg"]

    def test_error_payload_is_not_found(self):
        assert TikwmProvider().normalize({"code": -1, "msg": "Url parsing is failed!", "data": None}) is NOT_FOUND


class TestTieBreak:
    def test_video_preferred_by_default(self):
        assert isinstance(pick_media("v", [Photo("p")], "t"), Video)

    def test_photos_preferred_when_configured(self):
        assert isinstance(pick_media("v", [Photo("p")], "t", prefer_video=False), PhotoSet)

    def test_video_used_when_no_photos_even_if_photos_preferred(self):
        assert isinstance(pick_media("v", [], "t", prefer_video=False), Video)

    async def test_resolver_passes_tie_break_to_provider(self):
        payload = {"data": {"play": "https://v/1.mp4", "images": ["https://i/1.jpg"], "title": "both"}}

        async def fetch(url, params=None, timeout=15):
            return payload

        media = await Resolver([TikwmProvider()], fetch=fetch, prefer_video=False).resolve(SRC)
        assert isinstance(media, PhotoSet)


def test_build_providers_keeps_order_and_skips_unknown():
    providers = build_providers(["tikwm", "nope", "tiklydown"])
    assert [p.name for p in providers] == ["tikwm", "tiklydown"]
