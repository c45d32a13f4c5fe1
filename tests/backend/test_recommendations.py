"""Tests for fly recommendation parsing, generation and caching."""

import json
from datetime import datetime

import httpx
import pytest

from hatchmatch.exceptions import (
    ConfigurationError,
    ExtractionError,
    OracleError,
    RecommendationError,
    WaterBodyNotFoundError,
)
from hatchmatch.services.fishing_reports import FishingReportResult
from hatchmatch.services.fly_images import FLY_IMAGES, fly_image_url
from hatchmatch.services.recommendation_cache import RecommendationCache
from hatchmatch.services.recommendations import (
    RecommendationGenerator,
    RecommendationService,
    clamp_confidence,
    conditions_summary,
    default_recommendations,
    normalize_fly_type,
    parse_recommendations,
    time_of_day,
    water_characteristics,
)
from hatchmatch.services.report_aggregator import AggregatedFishingReport
from hatchmatch.services.water_bodies import WaterBody, WaterBodyRepository
from hatchmatch.services.weather import (
    OPEN_METEO_URL,
    WeatherClient,
    WeatherSnapshot,
    describe_weather_code,
    seasonal_fallback,
)

from fakes import FakeOracle, mock_client


def _water(**overrides):
    fields = dict(
        id="w1",
        name="Blue River",
        type="river",
        state="CO",
        latitude=39.6,
        longitude=-106.0,
        city="Silverthorne",
        species=["Rainbow Trout"],
        description="Tailwater below Dillon Dam",
    )
    fields.update(overrides)
    return WaterBody(**fields)


def _recs_reply(count=5):
    return json.dumps([
        {
            "fly_name": f"Fly {i}",
            "fly_type": "nymph",
            "confidence": 90 - i,
            "reasoning": "Works now.",
            "size": "18-22",
            "technique": "dead drift",
        }
        for i in range(count)
    ])


def _weather_page(offset_seconds=-25200):
    def handler(request):
        return httpx.Response(200, json={
            "utc_offset_seconds": offset_seconds,
            "current": {
                "temperature_2m": 41.6,
                "relative_humidity_2m": 55,
                "precipitation": 0,
                "weather_code": 2,
                "wind_speed_10m": 8.2,
                "cloud_cover": 40,
            },
        })
    return {OPEN_METEO_URL: handler}


class TestParsing:
    def test_parse_fenced_reply(self):
        reply = "```json\n" + _recs_reply() + "\n```"
        recs = parse_recommendations(reply)
        assert [r.fly_name for r in recs] == [f"Fly {i}" for i in range(5)]
        assert recs[0].confidence == 90

    def test_truncated_to_max(self):
        assert len(parse_recommendations(_recs_reply(8))) == 5

    def test_items_without_name_skipped(self):
        reply = json.dumps([{"fly_type": "dry"}, "junk", {"fly_name": "RS2", "fly_type": "Emerger"}])
        [rec] = parse_recommendations(reply)
        assert rec.fly_name == "RS2"
        assert rec.fly_type == "emerger"
        assert rec.image_url == FLY_IMAGES["rs2"]

    def test_nothing_usable_raises(self):
        with pytest.raises(ExtractionError):
            parse_recommendations("[]")
        with pytest.raises(ExtractionError):
            parse_recommendations("no json here")

    def test_clamp_confidence(self):
        assert clamp_confidence(150) == 100
        assert clamp_confidence(-5) == 1
        assert clamp_confidence("85") == 85
        assert clamp_confidence("high") == 1
        assert clamp_confidence(None) == 1
        assert clamp_confidence(float("nan")) == 1

    def test_normalize_fly_type(self):
        assert normalize_fly_type("DRY") == "dry"
        assert normalize_fly_type("terrestrial") == "nymph"
        assert normalize_fly_type(None) == "nymph"

    def test_default_recommendations(self):
        recs = default_recommendations()
        assert [r.confidence for r in recs] == [70, 65, 60, 55, 50]
        assert recs[0].fly_name == "Parachute Adams"
        assert all(1 <= r.confidence <= 100 for r in recs)


class TestFlyImages:
    def test_exact_match(self):
        assert fly_image_url("Zebra Midge") == FLY_IMAGES["zebra midge"]

    def test_partial_match(self):
        assert fly_image_url("Black Zebra Midge #20") == FLY_IMAGES["zebra midge"]

    def test_unknown(self):
        assert fly_image_url("Xyz") is None
        assert fly_image_url("") is None


class TestContextHelpers:
    def test_time_of_day(self):
        assert time_of_day(5) == "early morning (pre-dawn)"
        assert time_of_day(8) == "morning"
        assert time_of_day(12) == "midday"
        assert time_of_day(15) == "afternoon"
        assert time_of_day(19) == "evening"
        assert time_of_day(22) == "night"

    def test_spring_creek_detected_by_name(self):
        assert "SPRING CREEK" in water_characteristics(_water(name="Armstrong Spring Creek", type="creek"))

    def test_tailwater_detected_by_description(self):
        assert "TAILWATER" in water_characteristics(_water())

    def test_freestone_river(self):
        assert "FREESTONE" in water_characteristics(_water(description="Classic mountain river"))

    def test_stillwater(self):
        assert "STILLWATER" in water_characteristics(_water(type="lake", description=None))

    def test_generic(self):
        text = water_characteristics(_water(type="stream", description=None))
        assert text.startswith("Consider the water type")

    def test_conditions_summary(self):
        weather = WeatherSnapshot(temperature=42, conditions="partly cloudy", wind="light (8 mph)")
        assert conditions_summary(weather) == "Based on partly cloudy conditions with 42°F air temp."


class TestWeather:
    @pytest.mark.asyncio
    async def test_current_conditions(self, clock):
        async with mock_client(_weather_page()) as client:
            weather = await WeatherClient(client, now=clock).current(39.6, -106.0)
        assert weather.temperature == 42
        assert weather.conditions == "partly cloudy"
        assert weather.wind == "light (8 mph)"
        assert weather.utc_offset_seconds == -25200
        assert weather.is_fallback is False

    @pytest.mark.asyncio
    async def test_failure_uses_seasonal_fallback(self, clock):
        async with mock_client({OPEN_METEO_URL: 503}) as client:
            weather = await WeatherClient(client, now=clock).current(39.6, -106.0)
        assert weather.is_fallback is True
        assert (weather.temperature, weather.conditions) == (35, "overcast")

    def test_seasonal_fallback_by_month(self):
        assert seasonal_fallback(datetime(2026, 7, 1)).temperature == 75
        assert seasonal_fallback(datetime(2026, 12, 1)).temperature == 35
        assert seasonal_fallback(datetime(2026, 5, 1)).temperature == 55

    def test_weather_codes(self):
        assert describe_weather_code(0) == "clear"
        assert describe_weather_code(61) == "rainy"
        assert describe_weather_code(95) == "thunderstorms"


class TestRecommendationGenerator:
    @pytest.mark.asyncio
    async def test_prompt_carries_context(self, clock):
        oracle = FakeOracle([_recs_reply()])
        async with mock_client(_weather_page()) as client:
            generator = RecommendationGenerator(oracle, WeatherClient(client, now=clock), now=clock)
            generated = await generator.generate(_water())
        prompt = oracle.prompts[0]
        assert "WATER BODY: Blue River" in prompt
        assert "TAILWATER" in prompt
        assert "- Month: February" in prompt
        # 15:00 UTC at UTC-7 is 08:00 local
        assert "- Time of day: morning" in prompt
        assert "No recent fly shop reports available." in prompt
        assert len(generated.recommendations) == 5
        assert generated.conditions_summary == "Based on partly cloudy conditions with 42°F air temp."

    @pytest.mark.asyncio
    async def test_unusable_reply_gives_defaults(self, clock):
        oracle = FakeOracle(["I'm not sure."])
        async with mock_client({}) as client:
            generator = RecommendationGenerator(oracle, WeatherClient(client, now=clock), now=clock)
            generated = await generator.generate(_water())
        assert [r.confidence for r in generated.recommendations] == [70, 65, 60, 55, 50]

    @pytest.mark.asyncio
    async def test_oracle_failure_raises(self, clock):
        oracle = FakeOracle([OracleError("down")])
        async with mock_client({}) as client:
            generator = RecommendationGenerator(oracle, WeatherClient(client, now=clock), now=clock)
            with pytest.raises(RecommendationError, match="Failed to get recommendations from AI"):
                await generator.generate(_water())

    @pytest.mark.asyncio
    async def test_fishing_report_in_prompt(self, clock):
        report = AggregatedFishingReport(
            source_name="2 fly shops",
            extracted_flies=["Zebra Midge", "RS2"],
            extracted_conditions={"water_temp": "38F"},
            effectiveness_notes="Midges all day.",
        )

        class Reports:
            async def get_report(self, water_body_id=None, water_body_name=None, force_refresh=False):
                return FishingReportResult(report=report)

        oracle = FakeOracle([_recs_reply()])
        async with mock_client({}) as client:
            generator = RecommendationGenerator(
                oracle, WeatherClient(client, now=clock), reports=Reports(), now=clock,
            )
            generated = await generator.generate(_water())
        prompt = oracle.prompts[0]
        assert "FROM 2 fly shops:" in prompt
        assert "Recommended flies: Zebra Midge, RS2" in prompt
        assert "Conditions: water_temp: 38F" in prompt
        assert generated.fishing_report is report

    @pytest.mark.asyncio
    async def test_report_lookup_crash_does_not_block_recommendations(self, clock):
        class Reports:
            async def get_report(self, water_body_id=None, water_body_name=None, force_refresh=False):
                raise ValueError("Invalid IPv6 URL")

        oracle = FakeOracle([_recs_reply()])
        async with mock_client({}) as client:
            generator = RecommendationGenerator(
                oracle, WeatherClient(client, now=clock), reports=Reports(), now=clock,
            )
            generated = await generator.generate(_water())
        assert "No recent fly shop reports available." in oracle.prompts[0]
        assert generated.fishing_report is None
        assert len(generated.recommendations) == 5


class TestRecommendationService:
    def _service(self, db, clock, client, oracle):
        generator = RecommendationGenerator(oracle, WeatherClient(client, now=clock), now=clock)
        return RecommendationService(
            WaterBodyRepository(db), RecommendationCache(db, now=clock), generator,
        )

    def _create_water(self, db):
        return WaterBodyRepository(db).create(
            name="Blue River", type="river", state="CO", latitude=39.6, longitude=-106.0,
        )

    @pytest.mark.asyncio
    async def test_cache_hit_skips_oracle(self, db, clock):
        water = self._create_water(db)
        oracle = FakeOracle([_recs_reply()])
        async with mock_client(_weather_page()) as client:
            service = self._service(db, clock, client, oracle)
            first = await service.get_recommendations(water.id)
            second = await service.get_recommendations(water.id)
        assert first.from_cache is False
        assert second.from_cache is True
        assert oracle.calls == 1
        assert [r.fly_name for r in second.recommendations] == [r.fly_name for r in first.recommendations]
        assert second.conditions_summary == first.conditions_summary

    @pytest.mark.asyncio
    async def test_force_refresh_regenerates(self, db, clock):
        water = self._create_water(db)
        oracle = FakeOracle([_recs_reply(), _recs_reply()])
        async with mock_client(_weather_page()) as client:
            service = self._service(db, clock, client, oracle)
            await service.get_recommendations(water.id)
            refreshed = await service.get_recommendations(water.id, force_refresh=True)
        assert refreshed.from_cache is False
        assert oracle.calls == 2

    @pytest.mark.asyncio
    async def test_new_day_regenerates(self, db, clock):
        water = self._create_water(db)
        oracle = FakeOracle([_recs_reply(), _recs_reply()])
        async with mock_client(_weather_page()) as client:
            service = self._service(db, clock, client, oracle)
            await service.get_recommendations(water.id)
            clock.advance(hours=8)
            await service.get_recommendations(water.id)
            assert oracle.calls == 1
            clock.advance(hours=5)  # next UTC day
            await service.get_recommendations(water.id)
        assert oracle.calls == 2

    @pytest.mark.asyncio
    async def test_unknown_water(self, db, clock):
        async with mock_client({}) as client:
            service = self._service(db, clock, client, FakeOracle())
            with pytest.raises(WaterBodyNotFoundError):
                await service.get_recommendations("missing")

    @pytest.mark.asyncio
    async def test_missing_id(self, db, clock):
        async with mock_client({}) as client:
            service = self._service(db, clock, client, FakeOracle())
            with pytest.raises(ConfigurationError):
                await service.get_recommendations("")
