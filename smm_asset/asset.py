"""Asset and search entities bound to an SMM connection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .protocol import (
    SEARCH_ACCEPT_ACTION,
    SEARCH_COMPLETE_ACTION,
    AssetCommand,
    AssetRecord,
    CommandUpdate,
    SearchRecord,
    Waypoint,
    closest_search_path,
    decode_command,
    parse_search,
    parse_waypoints,
    position_report_path,
    search_action_path,
)

if TYPE_CHECKING:
    from .connection import SmmConnection

_LOGGER = logging.getLogger(__name__)


class SmmAsset:
    """A field unit reporting to the server through its connection.

    The asset keeps the last command the server returned from a position
    report. GOTO targets are only exposed while the last command is GOTO.
    """

    def __init__(self, connection: SmmConnection, record: AssetRecord) -> None:
        self._connection: SmmConnection | None = connection
        self._name = record.name
        self._type_name = record.type_name
        self._asset_id = record.asset_id
        self._asset_type_id = record.asset_type_id

        self._last_command = AssetCommand.NONE
        self._last_lat = 0.0
        self._last_lon = 0.0

    def __repr__(self) -> str:
        return f"SmmAsset(name={self._name!r}, asset_id={self._asset_id})"

    @property
    def connection(self) -> SmmConnection | None:
        return self._connection

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def type_name(self) -> str | None:
        return self._type_name

    @property
    def asset_id(self) -> int:
        return self._asset_id

    @property
    def asset_type_id(self) -> int:
        return self._asset_type_id

    @property
    def last_command(self) -> AssetCommand:
        return self._last_command

    def last_goto_position(self) -> tuple[float, float] | None:
        """Return the (lat, lon) target of the last GOTO, or None."""
        if self._last_command is not AssetCommand.GOTO:
            return None
        return self._last_lat, self._last_lon

    def release(self) -> None:
        """Detach from the connection; further network calls fail."""
        self._connection = None

    def apply_command(self, update: CommandUpdate) -> None:
        """Record a decoded command, keeping the previous target for absent coordinates."""
        if update.command is AssetCommand.GOTO:
            if update.latitude is not None:
                self._last_lat = update.latitude
            if update.longitude is not None:
                self._last_lon = update.longitude
        self._last_command = update.command

    async def report_position(
        self,
        latitude: float,
        longitude: float,
        altitude: int = 0,
        bearing: int = 0,
        fix: int = 0,
    ) -> bool:
        """Report the asset's position and record the returned command.

        Args:
            latitude: Latitude in degrees
            longitude: Longitude in degrees
            altitude: Altitude in meters
            bearing: Bearing in degrees
            fix: GPS fix quality

        Returns:
            True if the server accepted the report
        """
        if self._connection is None or self._name is None:
            _LOGGER.debug("Position report on detached or unnamed asset")
            return False

        path = position_report_path(
            self._name, latitude, longitude, altitude, bearing, fix
        )
        result = await self._connection.retrieve(path)
        if result is None or not result.ok:
            return False

        self.apply_command(decode_command(result.body, result.content_type))
        return True

    async def get_search(self, latitude: float, longitude: float) -> SmmSearch | None:
        """Ask the server for the closest search to the given position."""
        connection = self._connection
        if connection is None:
            return None

        path = closest_search_path(self._asset_id, latitude, longitude)
        result = await connection.retrieve(path)
        if result is None or not result.ok:
            return None
        if not result.is_json:
            connection.logger.info("No search offered for asset %s", self._name)
            return None

        try:
            payload = result.json()
        except ValueError as err:
            connection.logger.warning("Malformed search response: %s", err)
            return None

        record = parse_search(payload)
        if record is None:
            return None
        return SmmSearch(self, record)


class SmmSearch:
    """A server-assigned sweep, accepted and later completed by an asset.

    Distance and length are snapshots taken when the search was requested.
    """

    def __init__(self, asset: SmmAsset, record: SearchRecord) -> None:
        self._asset: SmmAsset | None = asset
        self._url = record.url
        self._distance = record.distance
        self._length = record.length
        self._sweep_width = record.sweep_width

    def __repr__(self) -> str:
        return f"SmmSearch(url={self._url!r}, length={self._length})"

    @property
    def asset(self) -> SmmAsset | None:
        return self._asset

    @property
    def url(self) -> str | None:
        return self._url if self._asset is not None else None

    @property
    def distance(self) -> int:
        return self._distance if self._asset is not None else 0

    @property
    def length(self) -> int:
        return self._length if self._asset is not None else 0

    @property
    def sweep_width(self) -> int:
        return self._sweep_width if self._asset is not None else 0

    def destroy(self) -> None:
        self._asset = None

    def _connection(self) -> SmmConnection | None:
        if self._asset is None:
            return None
        return self._asset.connection

    async def get_waypoints(self) -> list[Waypoint] | None:
        """Fetch the search polyline.

        Returns:
            Waypoints in sweep order, or None if the request failed. A
            response of the wrong shape yields an empty list, so check the
            length as well as None.
        """
        connection = self._connection()
        if connection is None:
            return None

        result = await connection.retrieve(self._url)
        if result is None or not result.ok:
            return None

        try:
            payload = result.json()
        except ValueError as err:
            connection.logger.warning("Malformed waypoint response: %s", err)
            return []
        return parse_waypoints(payload)

    async def accept(self) -> bool:
        """Tell the server this asset is starting the search."""
        return await self._action(SEARCH_ACCEPT_ACTION)

    async def complete(self) -> bool:
        """Tell the server this asset has finished the search."""
        return await self._action(SEARCH_COMPLETE_ACTION)

    async def _action(self, action: str) -> bool:
        connection = self._connection()
        if connection is None or self._asset is None:
            return False

        try:
            path = search_action_path(self._url, action, self._asset.asset_id)
        except ValueError as err:
            connection.logger.error("Cannot %s search: %s", action, err)
            return False

        result = await connection.retrieve(path, read_body=False)
        return result is not None and result.ok


def free_assets(assets: list[SmmAsset]) -> None:
    """Release a list of assets as a unit."""
    for asset in assets:
        asset.release()
    assets.clear()


def free_waypoints(waypoints: list[Waypoint]) -> None:
    waypoints.clear()
