"""Weather tool backed by the Open-Meteo geocoding and forecast APIs.

Neither API needs a key. Requests go through an ``httpx.Client`` so tests
can pass one built on ``httpx.MockTransport``.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .context import ToolContext, ToolError

logger = logging.getLogger(__name__)

GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
FORECAST_HOURS = 6
REQUEST_TIMEOUT_SECONDS = 10.0

WEATHER_CODES = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow",
    73: "Moderate snow",
    75: "Heavy snow",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}

WIND_DIRECTIONS = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)


def describe_weather_code(code: Optional[int]) -> str:
    return WEATHER_CODES.get(code, "Unknown")


def wind_direction(degrees: float) -> str:
    """
    Example:
        >>> wind_direction(350)
        'N'
        >>> wind_direction(90)
        'E'
    """
    return WIND_DIRECTIONS[round(degrees / 22.5) % 16]


def _get_json(client: httpx.Client, url: str, params: Dict[str, Any], label: str) -> Dict[str, Any]:
    try:
        response = client.get(url, params=params)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise ToolError(f"{label} API error: {e.response.status_code}", status_code=502)
    except httpx.HTTPError as e:
        raise ToolError(f"{label} API request failed: {e}", status_code=502)
    return response.json()


def _geocode(client: httpx.Client, location: str) -> Optional[Dict[str, Any]]:
    data = _get_json(
        client,
        GEOCODING_URL,
        {"name": location, "count": 1, "language": "en", "format": "json"},
        "Geocoding",
    )
    results = data.get("results") or []
    return results[0] if results else None


def _forecast(client: httpx.Client, latitude: float, longitude: float, metric: bool) -> Dict[str, Any]:
    return _get_json(
        client,
        FORECAST_URL,
        {
            "latitude": latitude,
            "longitude": longitude,
            "current_weather": "true",
            "hourly": "temperature_2m,relative_humidity_2m,precipitation_probability,weathercode",
            "temperature_unit": "celsius" if metric else "fahrenheit",
            "windspeed_unit": "kmh" if metric else "mph",
            "timezone": "auto",
            "forecast_days": 1,
        },
        "Weather",
    )


def _hourly_value(hourly: Dict[str, Any], key: str, index: int, default: Any = 0) -> Any:
    values = hourly.get(key) or []
    return values[index] if index < len(values) and values[index] is not None else default


def build_weather_report(place: Dict[str, Any], weather: Dict[str, Any], metric: bool) -> Dict[str, Any]:
    """Shape geocoding and forecast responses into the tool result."""
    current = weather.get("current_weather") or {}
    hourly = weather.get("hourly") or {}
    times = hourly.get("time") or []
    current_hour = (current.get("time") or "")[:13]

    humidity = None
    for i, hour in enumerate(times):
        if hour[:13] == current_hour:
            humidity = _hourly_value(hourly, "relative_humidity_2m", i, None)
            break

    forecast = []
    for i, hour in enumerate(times):
        if hour[:13] <= current_hour:
            continue
        forecast.append({
            "time": hour,
            "temperature": _hourly_value(hourly, "temperature_2m", i),
            "humidity": _hourly_value(hourly, "relative_humidity_2m", i),
            "precipitation_probability": _hourly_value(hourly, "precipitation_probability", i),
            "conditions": describe_weather_code(_hourly_value(hourly, "weathercode", i)),
        })
        if len(forecast) >= FORECAST_HOURS:
            break

    return {
        "location": {
            "name": place.get("name"),
            "country": place.get("country"),
            "region": place.get("admin1"),
            "latitude": place.get("latitude"),
            "longitude": place.get("longitude"),
            "timezone": weather.get("timezone"),
        },
        "current": {
            "temperature": current.get("temperature"),
            "temperature_unit": "°C" if metric else "°F",
            "humidity": humidity,
            "wind_speed": current.get("windspeed"),
            "wind_speed_unit": "km/h" if metric else "mph",
            "wind_direction": wind_direction(current.get("winddirection") or 0),
            "conditions": describe_weather_code(current.get("weathercode")),
            "is_day": current.get("is_day") == 1,
        },
        "forecast": forecast,
    }


def get_weather(ctx: ToolContext, args: Dict[str, Any]) -> Dict[str, Any]:
    """Current conditions and a short hourly forecast for a place name.

    Raises:
        ToolError: Missing location (400), unknown location (404), upstream failure (502)
    """
    location = args.get("location")
    if not isinstance(location, str) or not location.strip():
        raise ToolError("Location is required")
    metric = args.get("units", "imperial") == "metric"

    client = ctx.http_client or httpx.Client(timeout=REQUEST_TIMEOUT_SECONDS)
    try:
        place = _geocode(client, location.strip())
        if place is None:
            raise ToolError(f"Location not found: {location}", status_code=404)
        weather = _forecast(client, place["latitude"], place["longitude"], metric)
    finally:
        if ctx.http_client is None:
            client.close()

    logger.info(f"Weather lookup for {place.get('name')}")
    return build_weather_report(place, weather, metric)
