"""Real-world ping measurements between servers around the world."""

from __future__ import annotations

import csv
import math
from dataclasses import dataclass, field
from os import PathLike

MAX_PING_SERVERS = 300
EARTH_RADIUS_METERS = 6_371_008.8
DEFAULT_SERVERS_PATH = "data/servers-2020-07-19.csv"
DEFAULT_PINGS_PATH = "data/pings-2020-07-19-2020-07-20.csv"


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two points given in degrees."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(min(1.0, a)))


@dataclass(frozen=True)
class PingServer:
    """A server from the ping dataset."""

    id: int
    name: str
    title: str
    location: str
    state: str
    country: str
    state_abbv: str
    continent: int | None
    latitude: float
    longitude: float

    def coordinates(self) -> tuple[float, float]:
        """Return ``(latitude, longitude)``."""
        return (self.latitude, self.longitude)


def _stripped_rows(handle):
    reader = csv.DictReader(handle)
    for row in reader:
        yield {
            (key or "").strip(): (value or "").strip() for key, value in row.items()
        }


def _read_servers(path: str | PathLike) -> list[PingServer]:
    with open(path, newline="", encoding="utf-8") as handle:
        servers = [
            PingServer(
                id=int(row["id"]),
                name=row["name"],
                title=row["title"],
                location=row["location"],
                state=row["state"],
                country=row["country"],
                state_abbv=row["state_abbv"],
                continent=int(row["continent"]) if row["continent"] else None,
                latitude=float(row["latitude"]),
                longitude=float(row["longitude"]),
            )
            for row in _stripped_rows(handle)
        ]
    if len(servers) > MAX_PING_SERVERS:
        raise ValueError(f"more than {MAX_PING_SERVERS} ping servers in dataset")
    return servers


@dataclass
class PingDataset:
    """Ping servers and average pings between pairs of them."""

    servers: list[PingServer]
    averages: dict[int, float] = field(default_factory=dict)

    @classmethod
    def load(
        cls,
        servers_path: str | PathLike = DEFAULT_SERVERS_PATH,
        pings_path: str | PathLike = DEFAULT_PINGS_PATH,
    ) -> PingDataset:
        """Read the server list and ping measurements from CSV files."""
        dataset = cls(_read_servers(servers_path))
        counts: dict[int, int] = {}
        with open(pings_path, newline="", encoding="utf-8") as handle:
            for row in _stripped_rows(handle):
                source = int(row["source"])
                destination = int(row["destination"])
                if source >= MAX_PING_SERVERS or destination >= MAX_PING_SERVERS:
                    raise ValueError(f"server id out of range in measurement {row}")
                index = dataset._index(source, destination)
                avg = float(row["avg"])
                count = counts.get(index, 0)
                if count == 0:
                    dataset.averages[index] = avg
                else:
                    previous = dataset.averages[index]
                    dataset.averages[index] = (previous * count + avg) / (count + 1)
                counts[index] = count + 1
        return dataset

    def _index(self, source: int, destination: int) -> int:
        return source * len(self.servers) + destination

    def coordinates_for_city(self, city: str) -> tuple[float, float] | None:
        """Coordinates of the first server located in ``city``, if any."""
        return next(
            (s.coordinates() for s in self.servers if s.location == city), None
        )

    def find_closest_ping_server(self, lat: float, lon: float) -> PingServer:
        """The server closest to the given coordinates (whole meters compared)."""
        if not self.servers:
            raise ValueError("ping dataset holds no servers")
        return min(
            self.servers,
            key=lambda s: int(haversine_distance(s.latitude, s.longitude, lat, lon)),
        )

    def get_ping(self, source: int, destination: int) -> float | None:
        """Average ping from ``source`` to ``destination``.

        Pairs without measurements inside the table read as ``0.0``;
        indices beyond the table give ``None``.
        """
        index = self._index(source, destination)
        if not 0 <= index < MAX_PING_SERVERS * MAX_PING_SERVERS:
            return None
        return self.averages.get(index, 0.0)