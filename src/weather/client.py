"""OpenWeatherMap current-weather client.

Returns one human-readable sentence per lookup. "Location not found" is an answer, not an error;
only unexpected API failures raise `WeatherError`.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import urlopen

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.openweathermap.org/data/2.5"
NOT_CONFIGURED_MESSAGE = "Weather lookup is not configured. Set OPENWEATHER_API_KEY to enable it."

_WHITESPACE_RE = re.compile(r"\s+")


class WeatherError(RuntimeError):
    """Raised when the weather API fails unexpectedly."""

    public_message = "The weather service is unavailable right now. Please try again later."


@dataclass(frozen=True)
class WeatherConfig:
    api_key: str | None = None
    api_base: str = DEFAULT_API_BASE
    timeout_s: float = 10.0


def describe_weather(payload: dict[str, Any], location: str) -> str:
    """Render an OpenWeatherMap `/weather` payload as a sentence."""

    main = payload.get("main")
    if not isinstance(main, dict) or "temp" not in main:
        raise WeatherError("Invalid response from weather API")

    temp_c = round(float(main["temp"]))
    temp_f = round(float(main["temp"]) * 9 / 5 + 32)
    conditions = (payload.get("weather") or [{}])[0]
    description = conditions.get("description") or conditions.get("main") or "unknown conditions"

    name = payload.get("name") or location
    country = (payload.get("sys") or {}).get("country")
    place = f"{name}, {country}" if country else name

    text = f"The weather in {place} is {temp_c}°C ({temp_f}°F) with {description}."

    feels_like = main.get("feels_like")
    if feels_like is not None and round(float(feels_like)) != temp_c:
        text += f" It feels like {round(float(feels_like))}°C."

    humidity = main.get("humidity")
    if humidity:
        text += f" The humidity is {humidity}%."
    return text


class WeatherClient:
    """Looks up current weather by free-form location ("Paris, FR")."""

    def __init__(self, config: WeatherConfig) -> None:
        self._config = config

    def _fetch(self, query: str) -> dict[str, Any]:
        params = urlencode({"q": query, "appid": self._config.api_key, "units": "metric"})
        url = f"{self._config.api_base.rstrip('/')}/weather?{params}"
        with urlopen(url, timeout=self._config.timeout_s) as resp:  # noqa: S310 (fixed API host)
            return json.loads(resp.read())

    def lookup(self, location: str) -> str:
        """Return a sentence describing the current weather at `location`."""

        if not self._config.api_key:
            logger.warning("weather lookup skipped reason=missing_api_key")
            return NOT_CONFIGURED_MESSAGE

        try:
            try:
                payload = self._fetch(location)
            except HTTPError as exc:
                # "Gangtok Sikkim" is not found but "Gangtok,Sikkim" is.
                if exc.code != 404 or " " not in location.strip():
                    raise
                logger.info("weather retry with commas location=%r", location)
                payload = self._fetch(_WHITESPACE_RE.sub(",", location.strip()))
        except HTTPError as exc:
            if exc.code == 404:
                return (
                    f'I couldn\'t find weather information for "{location}". '
                    "Please check if the location name is correct."
                )
            raise WeatherError(f"Weather API HTTP error: {exc.code}") from exc
        except (URLError, TimeoutError) as exc:
            raise WeatherError("Weather API connection error") from exc
        except json.JSONDecodeError as exc:
            raise WeatherError("Weather API returned a non-JSON body") from exc

        return describe_weather(payload, location)
