"""Current weather at a water body from the Open-Meteo forecast API.

Open-Meteo needs no API key.  Weather only flavours the recommendation
prompt, so any failure falls back to seasonal defaults instead of raising.

API docs: https://open-meteo.com/en/docs
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import httpx

from .clock import Clock, utc_now

logger = logging.getLogger(__name__)

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"

REQUEST_TIMEOUT = 10.0


@dataclass
class WeatherSnapshot:
    temperature: int  # Degrees F
    conditions: str  # e.g. "partly cloudy"
    wind: str  # e.g. "light (8 mph)"
    precipitation: str = "none"
    humidity: Optional[float] = None
    cloud_cover: Optional[float] = None
    utc_offset_seconds: Optional[int] = None  # local time at the water
    is_fallback: bool = False


def describe_weather_code(code: Optional[int]) -> str:
    """Map a WMO weather interpretation code to a short condition word."""
    if code is None:
        return "clear"
    if 1 <= code <= 3:
        return "partly cloudy"
    if 45 <= code <= 48:
        return "foggy"
    if 51 <= code <= 67:
        return "rainy"
    if 71 <= code <= 77:
        return "snowy"
    if 80 <= code <= 82:
        return "rain showers"
    if code >= 95:
        return "thunderstorms"
    return "clear"


def describe_wind(speed_mph: int) -> str:
    if speed_mph < 5:
        return "calm"
    if speed_mph < 15:
        return "light"
    if speed_mph < 25:
        return "moderate"
    return "strong"


def seasonal_fallback(now: datetime) -> WeatherSnapshot:
    """Typical weather for the month when the API is unavailable."""
    month = now.month
    if 6 <= month <= 9:
        return WeatherSnapshot(75, "partly cloudy", "light", is_fallback=True)
    if month == 12 or month <= 3:
        return WeatherSnapshot(35, "overcast", "light", is_fallback=True)
    return WeatherSnapshot(55, "clear", "light", is_fallback=True)


class WeatherClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        now: Clock = utc_now,
        enabled: bool = True,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self._client = client
        self._now = now
        self._enabled = enabled
        self._timeout = timeout

    async def current(self, latitude: float, longitude: float) -> WeatherSnapshot:
        """Current conditions at (lat, lon), or the seasonal fallback."""
        if not self._enabled:
            return seasonal_fallback(self._now())

        params = {
            "latitude": latitude,
            "longitude": longitude,
            "current": (
                "temperature_2m,relative_humidity_2m,precipitation,"
                "weather_code,wind_speed_10m,cloud_cover"
            ),
            "temperature_unit": "fahrenheit",
            "wind_speed_unit": "mph",
            "timezone": "auto",
        }
        try:
            resp = await self._client.get(OPEN_METEO_URL, params=params, timeout=self._timeout)
            resp.raise_for_status()
            data = resp.json()
            current = data["current"]
            temperature = round(float(current["temperature_2m"]))
            wind_speed = round(float(current.get("wind_speed_10m") or 0))
            precipitation = float(current.get("precipitation") or 0)
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Weather lookup failed for (%s, %s): %s", latitude, longitude, exc)
            return seasonal_fallback(self._now())

        return WeatherSnapshot(
            temperature=temperature,
            conditions=describe_weather_code(current.get("weather_code")),
            wind=f"{describe_wind(wind_speed)} ({wind_speed} mph)",
            precipitation=f"{precipitation:g} mm" if precipitation > 0 else "none",
            humidity=current.get("relative_humidity_2m"),
            cloud_cover=current.get("cloud_cover"),
            utc_offset_seconds=data.get("utc_offset_seconds"),
        )
