"""Shared fixtures: a fake Xtream panel served through httpx.MockTransport."""

import base64
import json

import httpx
import pytest

from xtreamcatalog.models.config import AddonConfig
from xtreamcatalog.services.http_client import HttpClientService

PANEL_URL = "http://panel.test"

CONFIG_PAYLOAD = {
    "xtreamUrl": PANEL_URL + "/",
    "xtreamUsername": "user",
    "xtreamPassword": "pass",
}

PLAYLIST = """#EXTM3U
#EXTINF:-1 tvg-id="bbc1.uk" tvg-logo="http://img.test/bbc.png" group-title="UK News",BBC News
http://panel.test/live/user/pass/501.ts
#EXTINF:-1 group-title="Movies",Inception
http://panel.test/movie/user/pass/601.mkv
#EXTINF:-1 group-title="Series",Dark S01E01
http://panel.test/series/user/pass/701.mp4
#EXTINF:-1 group-title="Series",Dark S01E02
http://panel.test/series/user/pass/702.mp4
"""


def _actions() -> dict:
    return {
        "get_live_categories": [
            {"category_id": "1", "category_name": "Sport"},
            {"category_id": "2", "category_name": "FR| News"},
        ],
        "get_live_streams": [
            {"stream_id": 101, "name": "Sky Sports 1", "category_id": "1",
             "stream_icon": "http://img.test/sky.png", "epg_channel_id": "sky1.uk"},
            {"stream_id": 102, "name": "CNN", "category_id": "2"},
            {"stream_id": 103, "name": "Retro TV", "category_id": "99", "category_name": "Retro Classics"},
        ],
        # Object-shaped table: id -> record, or id -> bare name
        "get_vod_categories": {
            "10": {"category_id": "10", "category_name": "Action Movies"},
            "11": "Kids",
        },
        "get_vod_streams": [
            {"stream_id": 201, "name": "The Matrix", "category_id": "10", "rating": "8.7",
             "container_extension": "mkv", "releasedate": "1999-03-31"},
            {"stream_id": 202, "name": "Frozen", "category_id": "11", "rating": "0"},
        ],
        "get_series_categories": [
            {"category_id": "20", "category_name": "Séries TV"},
        ],
        "get_series": [
            {"series_id": 300, "name": "Breaking Bad", "category_id": "20",
             "cover": "http://img.test/bb.jpg", "rating": "9.5", "releaseDate": "2008-01-20"},
        ],
    }


def _series_info() -> dict:
    return {
        "300": {
            "info": {"name": "Breaking Bad"},
            "episodes": {
                "1": [
                    {"id": "3001", "episode_num": 1, "title": "Pilot", "season": 1,
                     "container_extension": "mkv"},
                    {"id": "3002", "episode_num": 2, "title": "Cat's in the Bag", "season": 1,
                     "container_extension": "mp4", "info": {"movie_image": "http://img.test/e2.jpg"}},
                ],
            },
        },
    }


class FakePanel:
    """In-memory Xtream panel; flip the attributes to simulate outages."""

    def __init__(self):
        self.probe = {"user_info": {"auth": 1, "status": "Active"}, "server_info": {}}
        self.actions = _actions()
        self.series_info = _series_info()
        self.playlist = PLAYLIST
        self.xmltv = None
        self.api_status = 200
        self.playlist_status = 200
        self.calls = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        params = dict(request.url.params)
        self.calls.append((path, params.get("action")))

        if path == "/player_api.php":
            if self.api_status != 200:
                return httpx.Response(self.api_status)
            action = params.get("action")
            if action is None:
                return httpx.Response(200, json=self.probe)
            if action == "get_series_info":
                data = self.series_info.get(params.get("series_id"))
                if data is None:
                    return httpx.Response(404)
                return httpx.Response(200, json=data)
            if action in self.actions:
                return httpx.Response(200, json=self.actions[action])
            return httpx.Response(404)
        if path == "/get.php":
            if self.playlist_status != 200 or self.playlist is None:
                return httpx.Response(self.playlist_status if self.playlist_status != 200 else 404)
            return httpx.Response(200, text=self.playlist)
        if path == "/xmltv.php":
            if self.xmltv is None:
                return httpx.Response(404)
            return httpx.Response(200, content=self.xmltv)
        return httpx.Response(404)

    def count(self, action=None, path="/player_api.php") -> int:
        return sum(1 for p, a in self.calls if p == path and (action is None or a == action))

    def http_client(self) -> HttpClientService:
        return HttpClientService(transport=httpx.MockTransport(self.handler))


def make_token(payload: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(payload).encode("utf-8")).decode("ascii").rstrip("=")


@pytest.fixture()
def panel():
    return FakePanel()


@pytest.fixture()
def config():
    return AddonConfig.model_validate(CONFIG_PAYLOAD)


@pytest.fixture()
def token():
    return make_token(CONFIG_PAYLOAD)
