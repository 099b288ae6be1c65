"""Experiment parameters of the sensor-to-sink Wi-Fi scenario."""

from __future__ import annotations

import ipaddress
import math
import numbers
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml


class InvalidParameter(ValueError):
    """Raised when a scenario parameter is missing, malformed or out of range."""

    def __init__(self, field: str, value: object, reason: str) -> None:
        super().__init__(f"{field}={value!r}: {reason}")
        self.field = field
        self.value = value
        self.reason = reason


# Names accepted on the command line (ns-3 style) mapped to field names.
PARAMETER_ALIASES = {
    "nSensors": "sensor_count",
    "simTime": "simulation_duration",
    "packetInterval": "packet_interval",
    "packetSize": "packet_size",
    "txPower": "tx_power",
}


def _validate_positive_real(name: str, value: object) -> float:
    """Return ``value`` as a positive real number or raise a clear error."""

    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidParameter(name, value, "must be a real number")
    if not math.isfinite(value) or value <= 0:
        raise InvalidParameter(name, value, "must be a positive, finite number")
    return float(value)


def _validate_non_negative_real(name: str, value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidParameter(name, value, "must be a real number")
    if not math.isfinite(value) or value < 0:
        raise InvalidParameter(name, value, "must be a non-negative, finite number")
    return float(value)


def _validate_finite_real(name: str, value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidParameter(name, value, "must be a real number")
    if not math.isfinite(value):
        raise InvalidParameter(name, value, "must be finite")
    return float(value)


def _validate_positive_int(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidParameter(name, value, "must be an integer")
    if value <= 0:
        raise InvalidParameter(name, value, "must be strictly positive")
    return int(value)


def _validate_port(name: str, value: object) -> int:
    port = _validate_positive_int(name, value)
    if port > 65535:
        raise InvalidParameter(name, value, "must be a valid UDP port")
    return port


@dataclass(frozen=True)
class ScenarioConfig:
    """Validated, immutable set of experiment parameters.

    The first five fields are the experiment knobs; the remaining ones
    describe the reference deployment (30 m x 30 m square, sink in the
    centre, ``10.1.1.0/24`` addressing, UDP port 4000) and only need to be
    touched for variants of the scenario.
    """

    sensor_count: int = 27
    simulation_duration: float = 47.0
    packet_interval: float = 1.0
    packet_size: int = 64
    tx_power: float = 20.0
    area_size: float = 30.0
    sink_port: int = 4000
    network_base: str = "10.1.1.0"
    network_mask: str = "255.255.255.0"
    ssid: str = "IoT-Network"
    app_start_time: float = 1.0
    seed: int = 1
    run: int = 1

    def __post_init__(self) -> None:
        coerce = object.__setattr__
        coerce(self, "sensor_count", _validate_positive_int("sensor_count", self.sensor_count))
        coerce(
            self,
            "simulation_duration",
            _validate_positive_real("simulation_duration", self.simulation_duration),
        )
        coerce(self, "packet_interval", _validate_positive_real("packet_interval", self.packet_interval))
        coerce(self, "packet_size", _validate_positive_int("packet_size", self.packet_size))
        coerce(self, "tx_power", _validate_finite_real("tx_power", self.tx_power))
        coerce(self, "area_size", _validate_positive_real("area_size", self.area_size))
        coerce(self, "sink_port", _validate_port("sink_port", self.sink_port))
        coerce(
            self,
            "app_start_time",
            _validate_non_negative_real("app_start_time", self.app_start_time),
        )
        coerce(self, "seed", _validate_positive_int("seed", self.seed))
        coerce(self, "run", _validate_positive_int("run", self.run))
        if not isinstance(self.ssid, str) or not self.ssid:
            raise InvalidParameter("ssid", self.ssid, "must be a non-empty string")
        try:
            ipaddress.IPv4Network(f"{self.network_base}/{self.network_mask}")
        except (ipaddress.AddressValueError, ipaddress.NetmaskValueError, ValueError) as exc:
            raise InvalidParameter(
                "network_base", f"{self.network_base}/{self.network_mask}", str(exc)
            ) from exc

    @property
    def node_count(self) -> int:
        """Number of nodes in the deployment, sink included."""
        return self.sensor_count + 1

    @classmethod
    def from_overrides(
        cls, overrides: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> "ScenarioConfig":
        """Build a config from the defaults updated with ``overrides``.

        Both field names (``packet_interval``) and command line aliases
        (``packetInterval``) are accepted. ``None`` values are ignored so that
        unset CLI options fall back to the defaults.
        """

        merged: dict[str, Any] = {}
        for source in (overrides or {}, kwargs):
            merged.update(source)
        return cls(**_normalize_overrides(merged))

    def with_overrides(self, **kwargs: Any) -> "ScenarioConfig":
        """Return a copy of this config with ``kwargs`` applied and revalidated."""

        return replace(self, **_normalize_overrides(kwargs))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_FIELD_NAMES = frozenset(f.name for f in fields(ScenarioConfig))


def _normalize_overrides(values: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in values.items():
        name = PARAMETER_ALIASES.get(key, key)
        if name not in _FIELD_NAMES:
            raise InvalidParameter(key, value, "unknown scenario parameter")
        if value is None:
            continue
        normalized[name] = value
    return normalized


def load_scenario_file(path: str | Path) -> tuple[dict[str, Any], dict[str, Any]]:
    """Read a YAML scenario description.

    The document is a mapping of scenario parameters, with an optional
    ``channel`` sub-mapping holding radio overrides. Returns
    ``(scenario_overrides, channel_overrides)``; validation happens when the
    values are applied. A missing, unreadable or malformed file raises
    :class:`InvalidParameter`.
    """

    cfg_path = Path(path)
    try:
        with cfg_path.open("r", encoding="utf8") as handle:
            document = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise InvalidParameter("config", str(cfg_path), str(exc)) from exc
    if not isinstance(document, Mapping):
        raise InvalidParameter("config", str(cfg_path), "expected a YAML mapping")
    scenario = dict(document)
    channel = scenario.pop("channel", None) or {}
    if not isinstance(channel, Mapping):
        raise InvalidParameter("channel", channel, "expected a mapping")
    return scenario, dict(channel)


__all__ = [
    "InvalidParameter",
    "PARAMETER_ALIASES",
    "ScenarioConfig",
    "load_scenario_file",
]
