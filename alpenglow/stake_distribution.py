"""Stake distributions of real and artificial validator sets."""

from __future__ import annotations

import csv
import json
import math
from dataclasses import dataclass, field, fields
from decimal import Decimal
from os import PathLike
from typing import Any, Iterable

from .ping_data import PingDataset

DEFAULT_VALIDATOR_DATA_PATH = "data/mainnet_validators_validatorsdotapp.json"
DEFAULT_SUI_VALIDATOR_DATA_PATH = "data/sui_validators.csv"

VALIDATORS_PER_HUB = 30
"""Number of validators placed at each hub of an artificial distribution."""

FIVE_HUBS: tuple[tuple[str, float], ...] = (
    ("San Francisco", 0.2),
    ("New York City", 0.2),
    ("London", 0.2),
    ("Shanghai", 0.2),
    ("Tokyo", 0.2),
)
"""Five global hubs with equal stake."""

STOCK_EXCHANGE_HUBS: tuple[tuple[str, float], ...] = (
    ("Toronto", 0.1),
    ("New York City", 0.2),
    ("Westpoort", 0.1),
    ("Taipei", 0.1),
    ("Pune", 0.2),
    ("Shanghai", 0.1),
    ("Hong Kong", 0.1),
    ("Tokyo", 0.1),
)
"""Locations of the top global stock exchanges (or nearby ping servers)."""


@dataclass
class ValidatorData:
    """Data for a single validator, in the format of the mainnet dataset."""

    network: str = ""
    account: str = ""
    name: str | None = None
    keybase_id: str | None = None
    www_url: str | None = None
    details: str | None = None
    avatar_url: str | None = None
    created_at: str = ""
    updated_at: str = ""
    admin_warning: str | None = None
    jito: bool = False
    jito_commission: int | None = None
    stake_pools_list: list[str] = field(default_factory=list)
    is_active: bool = False
    avatar_file_url: str | None = None
    active_stake: int | None = None
    authorized_withdrawer_score: int = 0
    commission: int | None = None
    data_center_concentration_score: int = 0
    delinquent: bool | None = None
    published_information_score: int = 0
    root_distance_score: int = 0
    security_report_score: int = 0
    skipped_slot_score: int = 0
    skipped_after_score: int = 0
    software_version: str = ""
    software_version_score: int = 0
    stake_concentration_score: int = 0
    consensus_mods_score: int = 0
    total_score: int = 0
    vote_distance_score: int = 0
    ip: str = ""
    data_center_key: str | None = None
    autonomous_system_number: int | None = None
    latitude: str | None = None
    longitude: str | None = None
    data_center_host: str | None = None
    vote_account: str = ""
    epoch_credits: int | None = None
    epoch: int | None = None
    skipped_slots: int | None = None
    skipped_slot_percent: str | None = None
    ping_time: float | None = None
    url: str = ""


_REQUIRED_FIELDS = frozenset(f.name for f in fields(ValidatorData) if f.default is not None)


@dataclass(frozen=True)
class SuiValidatorData:
    """Data for a single validator, in the format of the Sui dataset."""

    name: str
    stake: float
    address: str
    ip: str | None
    cloud: str | None
    city: str | None
    country: str | None
    coords: str
    ping: float


def _round_half_away(value: float) -> float:
    return math.floor(value + 0.5) if value >= 0 else math.ceil(value - 0.5)


def _float_to_string(value: float) -> str:
    text = format(Decimal(repr(float(value))), "f")
    return text[:-2] if text.endswith(".0") else text


def _validator_from_json(record: Any) -> ValidatorData:
    if not isinstance(record, dict):
        raise ValueError(f"validator record is not an object: {record!r}")
    values: dict[str, Any] = {}
    for f in fields(ValidatorData):
        value = record.get(f.name)
        if value is None:
            if f.name in _REQUIRED_FIELDS:
                raise ValueError(f"validator record lacks field {f.name!r}")
            continue
        values[f.name] = list(value) if f.name == "stake_pools_list" else value
    return ValidatorData(**values)


def load_validator_data(
    path: str | PathLike = DEFAULT_VALIDATOR_DATA_PATH,
) -> list[ValidatorData]:
    """Read the list of mainnet validators from a JSON file."""
    with open(path, encoding="utf-8") as handle:
        records = json.load(handle)
    if not isinstance(records, list):
        raise ValueError("validator data must be a JSON list")
    return [_validator_from_json(record) for record in records]


def _column(row: dict[str, str | None], key: str) -> str:
    value = row.get(key)
    if value is None:
        raise ValueError(f"Sui validator record lacks column {key!r}")
    return value


def _optional_column(row: dict[str, str | None], key: str) -> str | None:
    return row.get(key) or None


def _read_sui_rows(path: str | PathLike) -> Iterable[SuiValidatorData]:
    with open(path, newline="", encoding="utf-8") as handle:
        for row in csv.DictReader(handle):
            yield SuiValidatorData(
                name=_column(row, "name"),
                stake=float(_column(row, "stake")),
                address=_column(row, "address"),
                ip=_optional_column(row, "ip"),
                cloud=_optional_column(row, "cloud"),
                city=_optional_column(row, "city"),
                country=_optional_column(row, "country"),
                coords=_column(row, "coords"),
                ping=float(_column(row, "ping")),
            )


def _sui_to_validator_data(v: SuiValidatorData) -> ValidatorData:
    lat, sep, lon = v.coords.partition(",")
    if not sep:
        raise ValueError(f"coordinates without comma: {v.coords!r}")
    return ValidatorData(
        name=v.name,
        is_active=True,
        active_stake=max(0, int(_round_half_away(v.stake) * 100.0)),
        delinquent=False,
        ip=v.ip if v.ip is not None else v.address,
        data_center_key=f"{v.country or ''}-{v.city or ''}-{v.cloud or ''}",
        latitude=lat,
        longitude=lon,
        data_center_host=v.cloud,
        ping_time=v.ping,
        url=v.address,
    )


def load_sui_validator_data(
    path: str | PathLike = DEFAULT_SUI_VALIDATOR_DATA_PATH,
) -> list[ValidatorData]:
    """Read Sui validators from a CSV file, in the mainnet data format."""
    return [_sui_to_validator_data(v) for v in _read_sui_rows(path)]


def hub_validator_data(
    hubs: Iterable[tuple[str, float]], dataset: PingDataset
) -> list[ValidatorData]:
    """Generate an artificial stake distribution.

    ``hubs`` holds ``(city, fraction of total stake)`` pairs; each city must be
    in the ping ``dataset``. Each hub gets :data:`VALIDATORS_PER_HUB` validators.
    """
    validators = []
    for city, frac_stake in hubs:
        coordinates = dataset.coordinates_for_city(city)
        if coordinates is None:
            raise ValueError(f"no ping server in city {city!r}")
        lat, lon = coordinates
        stake = max(
            0, int(_round_half_away(frac_stake * 100.0 * 10_000.0 / VALIDATORS_PER_HUB))
        )
        validators.extend(
            ValidatorData(
                is_active=True,
                active_stake=stake,
                delinquent=False,
                latitude=_float_to_string(lat),
                longitude=_float_to_string(lon),
            )
            for _ in range(VALIDATORS_PER_HUB)
        )
    return validators


def five_hubs_validator_data(dataset: PingDataset) -> list[ValidatorData]:
    """Artificial stake distribution over five global hubs."""
    return hub_validator_data(FIVE_HUBS, dataset)


def stock_exchanges_validator_data(dataset: PingDataset) -> list[ValidatorData]:
    """Artificial stake distribution over the top global stock exchanges."""
    return hub_validator_data(STOCK_EXCHANGE_HUBS, dataset)