"""Unit tests for the weather tool

Open-Meteo is replaced by the MockHTTP route table from conftest.
"""

import pytest

from docspace.agents.tools.context import ToolError
from docspace.agents.tools.weather import (
    FORECAST_URL,
    GEOCODING_URL,
    build_weather_report,
    describe_weather_code,
    get_weather,
    wind_direction,
)

PARIS = {
    "name": "Paris",
    "country": "France",
    "admin1": "Île-de-France",
    "latitude": 48.85,
    "longitude": 2.35,
}


def forecast_body(hours=10):
    times = [f"2026-10-16T{h:02d}:00" for h in range(hours)]
    return {
        "timezone": "Europe/Paris",
        "current_weather": {
            "time": "2026-10-16T02:15",
            "temperature": 14.2,
            "windspeed": 11.0,
            "winddirection": 200,
            "weathercode": 3,
            "is_day": 0,
        },
        "hourly": {
            "time": times,
            "temperature_2m": [10 + h for h in range(hours)],
            "relative_humidity_2m": [80 - h for h in range(hours)],
            "precipitation_probability": [h * 5 for h in range(hours)],
            "weathercode": [0] * hours,
        },
    }


class TestHelpers:
    @pytest.mark.parametrize("degrees,direction", [(0, "N"), (350, "N"), (90, "E"), (200, "SSW"), (270, "W")])
    def test_wind_direction(self, degrees, direction):
        assert wind_direction(degrees) == direction

    def test_weather_codes(self):
        assert describe_weather_code(95) == "Thunderstorm"
        assert describe_weather_code(1234) == "Unknown"


class TestBuildWeatherReport:
    def test_current_conditions(self):
        report = build_weather_report(PARIS, forecast_body(), metric=True)

        assert report["location"]["region"] == "Île-de-France"
        assert report["location"]["timezone"] == "Europe/Paris"
        current = report["current"]
        assert current["temperature"] == 14.2
        assert current["temperature_unit"] == "°C"
        assert current["humidity"] == 78
        assert current["wind_direction"] == "SSW"
        assert current["conditions"] == "Overcast"
        assert current["is_day"] is False

    def test_forecast_is_next_six_hours(self):
        report = build_weather_report(PARIS, forecast_body(), metric=False)

        assert [f["time"][11:13] for f in report["forecast"]] == ["03", "04", "05", "06", "07", "08"]
        assert report["forecast"][0]["temperature"] == 13
        assert report["forecast"][0]["conditions"] == "Clear sky"
        assert report["current"]["wind_speed_unit"] == "mph"

    def test_short_forecast(self):
        report = build_weather_report(PARIS, forecast_body(hours=5), metric=True)
        assert len(report["forecast"]) == 2


class TestGetWeather:
    def test_lookup(self, tool_context, mock_http):
        mock_http.add("GET", GEOCODING_URL, json_body={"results": [PARIS]})
        mock_http.add("GET", FORECAST_URL, json_body=forecast_body())

        report = get_weather(tool_context, {"location": " Paris ", "units": "metric"})

        assert report["location"]["name"] == "Paris"
        geocode, forecast = mock_http.requests
        assert geocode.url.params["name"] == "Paris"
        assert forecast.url.params["temperature_unit"] == "celsius"
        assert forecast.url.params["latitude"] == "48.85"

    def test_imperial_by_default(self, tool_context, mock_http):
        mock_http.add("GET", GEOCODING_URL, json_body={"results": [PARIS]})
        mock_http.add("GET", FORECAST_URL, json_body=forecast_body())

        get_weather(tool_context, {"location": "Paris"})

        assert mock_http.requests[1].url.params["temperature_unit"] == "fahrenheit"

    def test_unknown_location(self, tool_context, mock_http):
        mock_http.add("GET", GEOCODING_URL, json_body={})

        with pytest.raises(ToolError) as exc_info:
            get_weather(tool_context, {"location": "Atlantis"})
        assert exc_info.value.status_code == 404

    def test_upstream_error(self, tool_context, mock_http):
        mock_http.add("GET", GEOCODING_URL, status_code=500)

        with pytest.raises(ToolError) as exc_info:
            get_weather(tool_context, {"location": "Paris"})
        assert exc_info.value.status_code == 502

    def test_location_required(self, tool_context):
        with pytest.raises(ToolError, match="Location is required"):
            get_weather(tool_context, {"location": "  "})
