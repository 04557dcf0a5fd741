"""
Tests for visit analytics: classification, recording, aggregation.
"""
import asyncio
import time

import pytest

from shortlink_app.analytics.aggregator import aggregation_cache_key, fold_events
from shortlink_app.analytics.classifier import (
    UNKNOWN,
    UNKNOWN_AGENT,
    DeviceType,
    UserAgentInfo,
    classify,
)
from shortlink_app.analytics.geo import GeoLocator
from shortlink_app.analytics.recorder import RecordingFailureSink
from shortlink_app.schemas.analytics import AggregatedAnalytics, AnalyticsResponse
from shortlink_app.schemas.redirect import VisitContext
from shortlink_app.store.strategies import EVENTS, LINKS
from tests.conftest import build_components

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
FIREFOX_LINUX = "Mozilla/5.0 (X11; Linux x86_64; rv:120.0) Gecko/20100101 Firefox/120.0"
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
SAFARI_IPAD = (
    "Mozilla/5.0 (iPad; CPU OS 16_6 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.6 Mobile/15E148 Safari/604.1"
)


class FixedCountry(GeoLocator):
    def __init__(self, country):
        self.country = country
        self.seen = []

    def resolve_country(self, ip):
        self.seen.append(ip)
        return self.country


class ExplodingGeo(GeoLocator):
    def resolve_country(self, ip):
        raise RuntimeError("geo service down")


class SlowGeo(GeoLocator):
    """Blocks like an HTTP lookup that runs into its timeout."""

    def __init__(self, delay):
        self.delay = delay

    def resolve_country(self, ip):
        time.sleep(self.delay)
        return "Germany"


def _event(browser="Chrome", device_type="desktop", country="unknown"):
    return {"browser": browser, "device_type": device_type, "country": country}


def _create_link(core, alias="tracked"):
    async def scenario():
        await core.service.shorten("https://example.com/", alias=alias, owner_id="alice")
        return (await core.store.find_one(LINKS, {"short_code": alias}))["id"]
    return asyncio.run(scenario())


class TestClassifier:
    def test_desktop_browser(self):
        info = classify(CHROME_WINDOWS)

        assert info.browser == "Chrome"
        assert info.os == "Windows"
        assert info.device_type == DeviceType.DESKTOP

    def test_linux_firefox(self):
        info = classify(FIREFOX_LINUX)

        assert info.browser == "Firefox"
        assert info.device_type == DeviceType.DESKTOP

    def test_phone_is_mobile(self):
        info = classify(SAFARI_IPHONE)

        assert info.os == "iOS"
        assert info.device_type == DeviceType.MOBILE

    def test_ipad_is_tablet(self):
        assert classify(SAFARI_IPAD).device_type == DeviceType.TABLET

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_missing_header(self, raw):
        assert classify(raw) == UNKNOWN_AGENT

    def test_unrecognised_agent_is_unknown_desktop(self):
        info = classify("!!! definitely not a browser !!!")

        assert info.browser == UNKNOWN
        assert info.os == UNKNOWN
        assert info.device_type == DeviceType.DESKTOP

    def test_is_deterministic(self):
        assert classify(SAFARI_IPHONE) == classify(SAFARI_IPHONE)


class TestRecorder:
    def test_records_classified_event(self, store):
        geo = FixedCountry("Germany")
        core = build_components(store, geo=geo)
        link_id = _create_link(core)

        asyncio.run(core.recorder.record(
            link_id, user_agent=SAFARI_IPHONE, referrer="https://t.co", client_ip="203.0.113.7"
        ))

        events = asyncio.run(core.store.list_many(EVENTS, {"link_id": link_id}))
        assert len(events) == 1
        assert events[0]["device_type"] == "mobile"
        assert events[0]["country"] == "Germany"
        assert events[0]["referrer"] == "https://t.co"
        assert events[0]["user_agent"] == SAFARI_IPHONE
        assert geo.seen == ["203.0.113.7"]

    def test_empty_agent_counts_as_unknown_desktop(self, core):
        link_id = _create_link(core)

        asyncio.run(core.recorder.record(link_id, user_agent="", referrer=""))

        event = asyncio.run(core.store.find_one(EVENTS, {"link_id": link_id}))
        assert event["browser"] == UNKNOWN
        assert event["os"] == UNKNOWN
        assert event["device_type"] == "desktop"
        assert event["country"] == "unknown"

    def test_classifier_is_injectable(self, store):
        def stub(raw):
            return UserAgentInfo(browser="Bot", os="Plan9", device_type=DeviceType.TABLET)

        core = build_components(store, classifier=stub)
        link_id = _create_link(core)

        asyncio.run(core.recorder.record(link_id, user_agent=CHROME_WINDOWS))

        event = asyncio.run(core.store.find_one(EVENTS, {"link_id": link_id}))
        assert (event["browser"], event["os"], event["device_type"]) == ("Bot", "Plan9", "tablet")

    def test_geo_failure_means_unknown_country(self, store):
        core = build_components(store, geo=ExplodingGeo())
        link_id = _create_link(core)

        asyncio.run(core.recorder.record(link_id, client_ip="8.8.8.8"))

        event = asyncio.run(core.store.find_one(EVENTS, {"link_id": link_id}))
        assert event["country"] == "unknown"

    def test_slow_geo_lookup_does_not_stall_the_loop(self, store):
        core = build_components(store, geo=SlowGeo(0.5))
        link_id = _create_link(core)

        async def scenario():
            loop = asyncio.get_running_loop()
            recording = asyncio.create_task(core.recorder.record(link_id, client_ip="8.8.8.8"))
            started = loop.time()
            await asyncio.sleep(0.01)
            waited = loop.time() - started
            await recording
            return waited

        assert asyncio.run(scenario()) < 0.25
        event = asyncio.run(core.store.find_one(EVENTS, {"link_id": link_id}))
        assert event["country"] == "Germany"

    def test_vanished_link_is_dropped_silently(self, core):
        asyncio.run(core.recorder.record("deleted-link-id", user_agent=CHROME_WINDOWS))

        assert asyncio.run(core.store.list_many(EVENTS, {})) == []
        failures = core.recorder.failure_sink.recent()
        assert len(failures) == 1
        assert failures[0].link_id == "deleted-link-id"
        assert "MissingReferenceError" in failures[0].error

    def test_storage_outage_does_not_raise(self, broken_core):
        asyncio.run(broken_core.recorder.record("any-id"))

        assert len(broken_core.recorder.failure_sink) == 1


class TestFailureSink:
    def test_keeps_only_most_recent(self):
        sink = RecordingFailureSink(capacity=2)
        for n in range(3):
            sink.add(f"link-{n}", ValueError(str(n)))

        assert [failure.link_id for failure in sink.recent()] == ["link-1", "link-2"]


class TestFoldEvents:
    def test_empty(self):
        aggregation = fold_events("x", [])

        assert aggregation.total == 0
        assert aggregation.browser_counts == {}
        assert aggregation.most_common_browser() is None
        assert aggregation.top_countries() == []

    def test_counts_every_event_once_per_dimension(self):
        events = [
            _event("Chrome", "desktop", "Germany"),
            _event("Chrome", "mobile", "unknown"),
            _event("Unknown", "desktop", "France"),
        ]

        aggregation = fold_events("x", events)

        assert aggregation.total == 3
        assert aggregation.browser_counts == {"Chrome": 2, "Unknown": 1}
        assert aggregation.device_counts == {"desktop": 2, "mobile": 1}
        assert aggregation.country_counts == {"Germany": 1, "unknown": 1, "France": 1}

    def test_ties_break_alphabetically(self):
        events = [_event("Safari"), _event("Firefox"), _event("Chrome"), _event("Firefox"), _event("Chrome")]

        assert fold_events("x", events).most_common_browser() == "Chrome"

    def test_top_three_countries(self):
        countries = ["Germany"] * 3 + ["France"] * 2 + ["Chile"] * 2 + ["Peru"]
        aggregation = fold_events("x", [_event(country=c) for c in countries])

        assert aggregation.top_countries() == [("Germany", 3), ("Chile", 2), ("France", 2)]

    def test_response_view(self):
        events = [_event("Firefox", "mobile", "Peru"), _event("Firefox", "mobile", "Chile")]

        response = AnalyticsResponse.from_aggregation(fold_events("x", events))

        assert response.total == 2
        assert response.most_common_browser == "Firefox"
        assert response.most_used_device == "mobile"
        assert [entry.key for entry in response.top_countries] == ["Chile", "Peru"]


class TestAggregator:
    AGENTS = [CHROME_WINDOWS, FIREFOX_LINUX, SAFARI_IPHONE, SAFARI_IPAD, "", CHROME_WINDOWS]

    def test_sums_match_click_count(self, core):
        link_id = _create_link(core)

        async def scenario():
            for agent in self.AGENTS:
                await core.recorder.record(link_id, user_agent=agent)
            return await core.aggregator.aggregate(link_id), await core.service.get_link(link_id)

        aggregation, link = asyncio.run(scenario())

        n = len(self.AGENTS)
        assert aggregation.total == n
        assert link.click_count == n
        assert sum(aggregation.browser_counts.values()) == n
        assert sum(aggregation.device_counts.values()) == n
        assert sum(aggregation.country_counts.values()) == n
        assert aggregation.most_common_browser() == "Chrome"
        assert aggregation.device_counts["tablet"] == 1

    def test_unknown_link_has_empty_aggregation(self, core):
        aggregation = asyncio.run(core.aggregator.aggregate("no-such-link"))

        assert aggregation.total == 0
        assert aggregation.country_counts == {}

    def test_repeated_aggregation_is_stable(self, core):
        link_id = _create_link(core)
        asyncio.run(core.recorder.record(link_id, user_agent=FIREFOX_LINUX))

        first = asyncio.run(core.aggregator.aggregate(link_id))
        second = asyncio.run(core.aggregator.aggregate(link_id))

        assert first == second

    def test_new_event_invalidates_cached_aggregation(self, core):
        link_id = _create_link(core)

        async def scenario():
            await core.recorder.record(link_id, user_agent=FIREFOX_LINUX)
            before = await core.aggregator.aggregate(link_id)
            assert await core.cache.get(aggregation_cache_key(link_id)) is not None

            await core.recorder.record(link_id, user_agent=FIREFOX_LINUX)
            assert await core.cache.get(aggregation_cache_key(link_id)) is None
            return before, await core.aggregator.aggregate(link_id)

        before, after = asyncio.run(scenario())

        assert before.total == 1
        assert after.total == 2

    def test_current_cache_entry_is_served(self, core):
        link_id = _create_link(core)

        async def scenario():
            await core.recorder.record(link_id, user_agent=FIREFOX_LINUX)
            await core.aggregator.aggregate(link_id)
            planted = AggregatedAnalytics(link_id=link_id, total=1, browser_counts={"FromCache": 1})
            await core.cache.set(aggregation_cache_key(link_id), planted.model_dump_json())
            return await core.aggregator.aggregate(link_id)

        assert asyncio.run(scenario()).browser_counts == {"FromCache": 1}

    def test_entry_cached_after_a_missed_invalidation_is_recomputed(self, core):
        link_id = _create_link(core)

        async def scenario():
            await core.recorder.record(link_id, user_agent=FIREFOX_LINUX)
            await core.aggregator.aggregate(link_id)
            # Another process inserts without this cache seeing an invalidation
            await core.store.insert_one(EVENTS, {
                "link_id": link_id, "browser": "Chrome", "os": "Windows", "device_type": "desktop",
            })
            return await core.aggregator.aggregate(link_id)

        aggregation = asyncio.run(scenario())

        assert aggregation.total == 2
        assert aggregation.browser_counts == {"Chrome": 1, "Firefox": 1}

    def test_unreadable_cache_entry_is_recomputed(self, core):
        link_id = _create_link(core)

        async def scenario():
            await core.recorder.record(link_id)
            await core.cache.set(aggregation_cache_key(link_id), "{not json")
            return await core.aggregator.aggregate(link_id)

        assert asyncio.run(scenario()).total == 1


class TestTaskDispatcher:
    def test_drain_waits_for_recording(self, core):
        link_id = _create_link(core)

        async def scenario():
            await core.dispatcher.dispatch(link_id, VisitContext(user_agent=SAFARI_IPHONE))
            await core.dispatcher.drain()
            return await core.service.get_link(link_id)

        assert asyncio.run(scenario()).click_count == 1
        assert core.dispatcher.pending == 0

    def test_resolve_hands_off_one_visit(self, core):
        _create_link(core, alias="go")

        async def scenario():
            for _ in range(3):
                await core.service.resolve("go")
            await core.dispatcher.drain()
            return await core.store.find_one(LINKS, {"short_code": "go"})

        assert asyncio.run(scenario())["click_count"] == 3
