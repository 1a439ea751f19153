"""Tests for catalog loading: JSON API path, playlist fallback and failure."""

import asyncio

import pytest

from xtreamcatalog.errors import ConfigError, UpstreamError
from xtreamcatalog.models.catalog import ContentKind
from xtreamcatalog.models.config import AddonConfig
from xtreamcatalog.services.cache_service import CacheService
from xtreamcatalog.services.loader_service import (
    LoaderService,
    decode_category_table,
    parse_rating,
    parse_year,
)
from xtreamcatalog.services.m3u_service import short_hash
from xtreamcatalog.services.xtream_service import XtreamService


def _load(panel, config):
    loader = LoaderService(XtreamService(panel.http_client()))
    return asyncio.run(loader.load(config))


def _with(config, **changes):
    return config.model_copy(update=changes)


class TestDecoding:
    def test_category_table_list(self):
        data = [
            {"category_id": "1", "category_name": "Sport"},
            {"category_id": 2, "category_name": "News"},
            {"category_id": "", "category_name": "Broken"},
            {"category_name": "No id"},
            "garbage",
        ]
        assert decode_category_table(data) == {"1": "Sport", "2": "News"}

    def test_category_table_object(self):
        data = {
            "10": {"category_id": "10", "category_name": "Action"},
            "11": "Kids",
            "12": {"category_name": "Keyed by outer id"},
            "13": {"category_id": "13"},
        }
        assert decode_category_table(data) == {"10": "Action", "11": "Kids", "12": "Keyed by outer id"}

    def test_category_table_other(self):
        assert decode_category_table(None) == {}
        assert decode_category_table("oops") == {}

    @pytest.mark.parametrize("value,expected", [
        ("8.7", 8.7), (7, 7.0), ("", None), ("N/A", None), (None, None), ("abc", None), ("0", None), (0, None),
    ])
    def test_parse_rating(self, value, expected):
        assert parse_rating(value) == expected

    def test_zero_rating_kept_when_configured(self):
        assert parse_rating("0", zero_is_missing=False) == 0.0

    def test_parse_year(self):
        assert parse_year({"year": "2010"}) == 2010
        assert parse_year({"releasedate": "1999-03-31"}) == 1999
        assert parse_year({"releaseDate": "2008-01-20"}) == 2008
        assert parse_year({"year": "", "release_date": "20/05/2015"}) == 2015
        assert parse_year({"year": "0000"}) is None
        assert parse_year({}) is None


class TestApiLoad:
    def test_loads_all_kinds(self, panel, config):
        snapshot = _load(panel, config)
        assert snapshot.source == "api"
        assert snapshot.counts == {"channels": 3, "movies": 2, "series": 1}

    def test_channel_mapping(self, panel, config):
        channel = _load(panel, config).channels[0]
        assert channel.id == "live_101"
        assert channel.kind is ContentKind.CHANNEL
        assert channel.name == "Sky Sports 1"
        assert channel.url == "http://panel.test/live/user/pass/101.ts"
        assert channel.poster == "http://img.test/sky.png"
        assert channel.raw_category == "Sport"
        assert channel.category == "Sports"
        assert channel.epg_channel_id == "sky1.uk"

    def test_live_extension_from_config(self, panel, config):
        snapshot = _load(panel, _with(config, live_extension="m3u8"))
        assert snapshot.channels[0].url.endswith("/101.m3u8")

    def test_category_name_on_record_used_when_id_unknown(self, panel, config):
        retro = _load(panel, config).channels[2]
        assert retro.raw_category == "Retro Classics"
        assert retro.category == "Retro Classics"

    def test_backend_order_kept(self, panel, config):
        snapshot = _load(panel, config)
        assert [c.id for c in snapshot.channels] == ["live_101", "live_102", "live_103"]

    def test_movie_mapping(self, panel, config):
        matrix, frozen = _load(panel, config).movies
        assert matrix.id == "vod_201"
        assert matrix.url == "http://panel.test/movie/user/pass/201.mkv"
        assert matrix.rating == 8.7
        assert matrix.year == 1999
        assert matrix.category == "Movies"
        # Object-shaped category table
        assert frozen.category == "Kids"
        assert frozen.url.endswith("/202.mp4")

    def test_zero_rating_missing_by_default(self, panel, config):
        frozen = _load(panel, config).movies[1]
        assert frozen.rating is None

    def test_zero_rating_kept_when_configured(self, panel, config):
        frozen = _load(panel, _with(config, zero_rating_is_missing=False)).movies[1]
        assert frozen.rating == 0.0

    def test_series_mapping(self, panel, config):
        series = _load(panel, config).series[0]
        assert series.id == "series_300"
        assert series.series_id == "300"
        assert series.url is None
        assert series.category == "Series"
        assert series.year == 2008
        assert series.poster == "http://img.test/bb.jpg"

    def test_categories_in_first_seen_order(self, panel, config):
        snapshot = _load(panel, config)
        assert snapshot.category_labels(ContentKind.CHANNEL) == ("Sports", "News", "Retro Classics")
        assert snapshot.sorted_categories(ContentKind.CHANNEL) == ["News", "Retro Classics", "Sports"]

    def test_include_categories_off(self, panel, config):
        snapshot = _load(panel, _with(config, include_categories=False))
        assert snapshot.categories == {}
        assert snapshot.channels[0].category == "Sports"

    def test_include_series_off(self, panel, config):
        snapshot = _load(panel, _with(config, include_series=False))
        assert snapshot.series == ()
        assert panel.count("get_series") == 0
        assert panel.count("get_series_categories") == 0

    def test_missing_category_tables_default_labels(self, panel, config):
        del panel.actions["get_live_categories"]
        snapshot = _load(panel, config)
        assert snapshot.source == "api"
        assert snapshot.channels[0].raw_category == "Live TV"
        assert snapshot.channels[2].raw_category == "Retro Classics"

    def test_listing_keyed_by_id(self, panel, config):
        panel.actions["get_live_streams"] = {"101": {"stream_id": 101, "name": "Keyed", "category_id": "1"}}
        assert [c.name for c in _load(panel, config).channels] == ["Keyed"]

    def test_missing_series_listing_is_not_fatal(self, panel, config):
        del panel.actions["get_series"]
        snapshot = _load(panel, config)
        assert snapshot.source == "api"
        assert snapshot.series == ()


class TestFallback:
    def test_http_500_falls_back_to_playlist(self, panel, config):
        panel.api_status = 500
        snapshot = _load(panel, config)
        assert snapshot.source == "m3u"
        assert [c.id for c in snapshot.channels] == ["live_501"]
        assert snapshot.channels[0].name == "BBC News"
        assert snapshot.channels[0].category == "News"
        assert snapshot.channels[0].epg_channel_id == "bbc1.uk"
        assert [m.id for m in snapshot.movies] == ["vod_601"]

    def test_rejected_credentials_fall_back(self, panel, config):
        panel.probe = {"user_info": {"auth": 0}}
        assert _load(panel, config).source == "m3u"

    def test_required_listing_failure_falls_back(self, panel, config):
        del panel.actions["get_vod_streams"]
        assert _load(panel, config).source == "m3u"

    def test_playlist_series_grouping(self, panel, config):
        panel.api_status = 500
        snapshot = _load(panel, config)
        series_id = f"series_{short_hash('Dark')}"
        assert [s.id for s in snapshot.series] == [series_id]
        episodes = snapshot.episodes[series_id]
        assert [(e.season, e.episode) for e in episodes] == [(1, 1), (1, 2)]
        assert episodes[1].id == f"{series_id}:1:2"
        assert episodes[1].url == "http://panel.test/series/user/pass/702.mp4"

    def test_unmarked_episodes_get_counter_numbers(self, panel, config):
        panel.playlist = (
            "#EXTM3U\n"
            '#EXTINF:-1 group-title="Series",Dark S01E01\nhttp://panel.test/series/u/p/1.mp4\n'
            '#EXTINF:-1 group-title="Series",Dark S01E01\nhttp://panel.test/series/u/p/2.mp4\n'
        )
        snapshot = _load(panel, _with(config, use_m3u=True))
        episodes = snapshot.episodes[snapshot.series[0].id]
        assert [(e.season, e.episode) for e in episodes] == [(1, 1), (1, 2)]

    def test_use_m3u_skips_api(self, panel, config):
        snapshot = _load(panel, _with(config, use_m3u=True))
        assert snapshot.source == "m3u"
        assert panel.count() == 0

    def test_playlist_output_parameter(self, panel, config):
        seen = []
        handler = panel.handler

        def spy(request):
            seen.append(dict(request.url.params))
            return handler(request)

        panel.handler = spy
        _load(panel, _with(config, use_m3u=True, m3u_output="ts"))
        assert seen[0]["type"] == "m3u_plus"
        assert seen[0]["output"] == "ts"

    def test_both_failing_raises(self, panel, config):
        panel.api_status = 500
        panel.playlist_status = 503
        with pytest.raises(UpstreamError):
            _load(panel, config)

    def test_failure_leaves_cache_empty(self, panel, config):
        panel.api_status = 500
        panel.playlist_status = 503
        loader = LoaderService(XtreamService(panel.http_client()))
        cache = CacheService()
        with pytest.raises(UpstreamError):
            asyncio.run(cache.get_or_load("k", lambda: loader.load(config)))
        assert len(cache) == 0

    def test_empty_playlist_is_failure(self, panel, config):
        panel.api_status = 500
        panel.playlist = "#EXTM3U\n"
        with pytest.raises(UpstreamError):
            _load(panel, config)


class TestCredentials:
    def test_missing_password(self, panel):
        config = AddonConfig(xtream_url="http://panel.test", xtream_username="user")
        with pytest.raises(ConfigError):
            _load(panel, config)
        assert panel.calls == []

    def test_bad_scheme(self, panel):
        config = AddonConfig(xtream_url="ftp://panel.test", xtream_username="u", xtream_password="p")
        with pytest.raises(ConfigError):
            _load(panel, config)
