"""Protocol helpers for SMM asset endpoints.

This module builds request paths and decodes response payloads into typed
records. It performs no I/O; shape problems are logged and reported as
"no data" rather than raised.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final
from urllib.parse import quote

from .http import JSON_CONTENT_TYPE

_LOGGER = logging.getLogger(__name__)

ASSETS_PATH: Final = "/assets/mine/json/"
CLOSEST_SEARCH_PATH: Final = "/search/find/closest/"
SEARCH_JSON_MARKER: Final = "/json/"

SEARCH_ACCEPT_ACTION: Final = "begin"
SEARCH_COMPLETE_ACTION: Final = "finished"


class AssetCommand(Enum):
    """Commands an asset can be given by the server."""

    NONE = "none"
    CONTINUE = "continue"
    GOTO = "goto"
    RTL = "rtl"
    CIRCLE = "circle"
    ABANDON_SEARCH = "abandon_search"
    MISSION_COMPLETE = "mission_complete"
    UNKNOWN = "unknown"


# Server action codes
_ACTION_CODES: Final[dict[str, AssetCommand]] = {
    "GOTO": AssetCommand.GOTO,
    "RON": AssetCommand.CONTINUE,
    "RTL": AssetCommand.RTL,
    "CIR": AssetCommand.CIRCLE,
    "AS": AssetCommand.ABANDON_SEARCH,
    "MC": AssetCommand.MISSION_COMPLETE,
}

_CONTINUE_TEXT: Final = "Continue"


@dataclass(frozen=True, slots=True)
class CommandUpdate:
    """Decoded command, with a target only for GOTO.

    Attributes:
        command: Decoded command kind.
        latitude: GOTO target latitude, None when absent.
        longitude: GOTO target longitude, None when absent.
    """

    command: AssetCommand
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True, slots=True)
class AssetRecord:
    """One entry of the asset listing."""

    asset_id: int
    asset_type_id: int
    name: str | None
    type_name: str | None


@dataclass(frozen=True, slots=True)
class SearchRecord:
    """Closest-search response fields.

    Attributes:
        url: Search resource path, ending in /json/.
        distance: Distance to the search start in meters, at request time.
        length: Total sweep length in meters.
        sweep_width: Sweep width in meters.
    """

    url: str
    distance: int
    length: int
    sweep_width: int


@dataclass(frozen=True, slots=True)
class Waypoint:
    """A single point on a search polyline."""

    lat: float
    lon: float


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return int(value)


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def decode_command(body: bytes | str, content_type: str | None) -> CommandUpdate:
    """Decode a position-report response into a command.

    JSON bodies are mapped through the server action codes. Anything else is
    treated as plain text, where only a literal "Continue" means CONTINUE.
    """
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")

    if content_type != JSON_CONTENT_TYPE:
        if body.strip() == _CONTINUE_TEXT:
            return CommandUpdate(AssetCommand.CONTINUE)
        return CommandUpdate(AssetCommand.NONE)

    try:
        payload = json.loads(body)
    except ValueError as err:
        _LOGGER.warning("Malformed command JSON: %s", err)
        return CommandUpdate(AssetCommand.UNKNOWN)

    if not isinstance(payload, dict):
        _LOGGER.warning("Command payload is not an object: %r", payload)
        return CommandUpdate(AssetCommand.UNKNOWN)

    action = payload.get("action")
    command = AssetCommand.UNKNOWN
    if isinstance(action, str):
        command = _ACTION_CODES.get(action, AssetCommand.UNKNOWN)
    if command is AssetCommand.UNKNOWN:
        _LOGGER.debug("Unrecognised action %r", action)
        return CommandUpdate(AssetCommand.UNKNOWN)

    if command is AssetCommand.GOTO:
        return CommandUpdate(
            command,
            latitude=_as_float(payload.get("latitude")),
            longitude=_as_float(payload.get("longitude")),
        )
    return CommandUpdate(command)


def parse_assets(payload: Any) -> list[AssetRecord]:
    """Parse the asset listing into records, preserving server order."""
    if not isinstance(payload, dict) or not isinstance(payload.get("assets"), list):
        _LOGGER.warning("Asset listing has no assets array")
        return []

    records: list[AssetRecord] = []
    for entry in payload["assets"]:
        if not isinstance(entry, dict):
            _LOGGER.warning("Skipping malformed asset entry: %r", entry)
            continue
        for key, value in entry.items():
            if key not in ("id", "type_id", "name", "type_name"):
                _LOGGER.debug("Ignoring asset field %s = %r", key, value)
        records.append(
            AssetRecord(
                asset_id=_as_int(entry.get("id"), -1),
                asset_type_id=_as_int(entry.get("type_id"), -1),
                name=_as_str(entry.get("name")),
                type_name=_as_str(entry.get("type_name")),
            )
        )
    return records


def parse_search(payload: Any) -> SearchRecord | None:
    """Parse a closest-search response, or None if it names no search."""
    if not isinstance(payload, dict):
        _LOGGER.warning("Search payload is not an object")
        return None
    url = _as_str(payload.get("object_url"))
    if url is None:
        _LOGGER.info("Search response carries no object_url")
        return None
    return SearchRecord(
        url=url,
        distance=_as_int(payload.get("distance"), 0),
        length=_as_int(payload.get("length"), 0),
        sweep_width=_as_int(payload.get("sweep_width"), 0),
    )


def parse_waypoints(payload: Any) -> list[Waypoint]:
    """Parse a single-feature GeoJSON-like envelope into waypoints.

    Coordinates arrive as [lon, lat] pairs and are returned as (lat, lon) in
    the server's order. Any other envelope shape yields no waypoints.
    """
    features = payload.get("features") if isinstance(payload, dict) else None
    if not isinstance(features, list):
        _LOGGER.warning("Didn't find waypoints")
        return []
    if len(features) != 1:
        _LOGGER.warning("Expected exactly one search feature, got %d", len(features))
        return []

    feature = features[0]
    geometry = feature.get("geometry") if isinstance(feature, dict) else None
    coords = geometry.get("coordinates") if isinstance(geometry, dict) else None
    if not isinstance(coords, list):
        _LOGGER.warning("Search feature has no coordinates")
        return []

    waypoints: list[Waypoint] = []
    for pair in coords:
        if not isinstance(pair, list) or len(pair) < 2:
            _LOGGER.warning("Skipping malformed coordinate %r", pair)
            continue
        lon = _as_float(pair[0])
        lat = _as_float(pair[1])
        if lat is None or lon is None:
            _LOGGER.warning("Skipping non-numeric coordinate %r", pair)
            continue
        waypoints.append(Waypoint(lat=lat, lon=lon))
    return waypoints


def position_report_path(
    name: str,
    latitude: float,
    longitude: float,
    altitude: int,
    bearing: int,
    fix: int,
) -> str:
    return (
        f"/data/assets/{quote(name, safe='')}/position/add/"
        f"?lat={latitude:f}&lon={longitude:f}&alt={altitude}&bearing={bearing}&fix={fix}"
    )


def closest_search_path(asset_id: int, latitude: float, longitude: float) -> str:
    return f"{CLOSEST_SEARCH_PATH}?asset_id={asset_id}&latitude={latitude:f}&longitude={longitude:f}"


def search_action_path(url: str, action: str, asset_id: int) -> str:
    """Rewrite a search resource URL into its action endpoint.

    Example:
        "/search/42/json/" with action "begin" and asset 7 becomes
        "/search/42/begin/?asset_id=7".

    Raises:
        ValueError: If the URL has no /json/ segment
    """
    index = url.find(SEARCH_JSON_MARKER)
    if index < 0:
        raise ValueError(f"Search URL {url!r} has no {SEARCH_JSON_MARKER} segment")
    return f"{url[:index]}/{action}/?asset_id={asset_id}"
