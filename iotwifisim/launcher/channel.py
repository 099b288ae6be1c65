"""Shared wireless medium: propagation loss, delay and reception thresholds."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields
from typing import Any, Mapping

from .config import (
    InvalidParameter,
    _validate_finite_real,
    _validate_non_negative_real,
    _validate_positive_real,
)

logger = logging.getLogger(__name__)

SPEED_OF_LIGHT = 299792458.0

_LOSS_MODEL_ALIASES = {
    "friis": "friis",
    "log_distance": "log_distance",
    "log-distance": "log_distance",
    "logdistance": "log_distance",
    "none": "none",
    "lossless": "none",
}


def _normalize_loss_model(model: str) -> str:
    key = str(model).strip().lower()
    normalized = _LOSS_MODEL_ALIASES.get(key)
    if normalized is None:
        supported = ", ".join(sorted(_LOSS_MODEL_ALIASES))
        raise InvalidParameter(
            "propagation_loss", model, f"unknown loss model, expected one of: {supported}"
        )
    return normalized


_POSITIVE_FIELDS = (
    "frequency_hz",
    "system_loss",
    "path_loss_exponent",
    "reference_distance_m",
    "propagation_speed",
    "bandwidth_hz",
)
_FINITE_FIELDS = (
    "reference_loss_dB",
    "noise_figure_dB",
    "rx_sensitivity_dBm",
    "min_snr_dB",
)


@dataclass(frozen=True)
class ChannelConfig:
    """Radio parameters applied uniformly to every device on the channel."""

    propagation_loss: str = "friis"
    frequency_hz: float = 2.412e9
    system_loss: float = 1.0
    min_loss_dB: float = 0.0
    path_loss_exponent: float = 3.0
    reference_distance_m: float = 1.0
    reference_loss_dB: float = 46.6777
    propagation_speed: float = SPEED_OF_LIGHT
    bandwidth_hz: float = 20e6
    noise_figure_dB: float = 7.0
    rx_sensitivity_dBm: float = -101.0
    min_snr_dB: float = 4.0

    def __post_init__(self) -> None:
        coerce = object.__setattr__
        coerce(self, "propagation_loss", _normalize_loss_model(self.propagation_loss))
        for name in _POSITIVE_FIELDS:
            coerce(self, name, _validate_positive_real(name, getattr(self, name)))
        for name in _FINITE_FIELDS:
            coerce(self, name, _validate_finite_real(name, getattr(self, name)))
        coerce(self, "min_loss_dB", _validate_non_negative_real("min_loss_dB", self.min_loss_dB))

    @classmethod
    def from_overrides(cls, overrides: Mapping[str, Any] | None = None) -> "ChannelConfig":
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in (overrides or {}).items():
            if key not in known:
                raise InvalidParameter(key, value, "unknown channel parameter")
            values[key] = value
        return cls(**values)


class WifiChannel:
    """Single logical channel shared by every Wi-Fi device of the scenario.

    The loss models follow the usual definitions:

    * ``friis``: free space, ``L = 20 log10(4 π d / λ) + 10 log10(system_loss)``;
      the loss never drops below ``min_loss_dB``.
    * ``log_distance``: ``L = L0 + 10 n log10(d / d0)``, no loss below ``d0``.
    * ``none``: lossless, the received power equals the transmit power.
    """

    def __init__(self, config: ChannelConfig | None = None) -> None:
        self.config = config or ChannelConfig()
        self.devices: list = []
        self.transmissions: list = []

    # ------------------------------------------------------------------
    @property
    def wavelength_m(self) -> float:
        return SPEED_OF_LIGHT / self.config.frequency_hz

    @property
    def noise_floor_dBm(self) -> float:
        cfg = self.config
        return -174.0 + 10.0 * math.log10(cfg.bandwidth_hz) + cfg.noise_figure_dB

    def add_device(self, device) -> None:
        self.devices.append(device)

    def start_transmission(self, transmission) -> None:
        self.transmissions.append(transmission)

    def on_air(self, now: float) -> list:
        """Return the transmissions still keeping the medium busy at ``now``."""

        self.transmissions = [tx for tx in self.transmissions if tx.busy_until > now]
        return list(self.transmissions)

    # ------------------------------------------------------------------
    def path_loss(self, distance: float) -> float:
        """Return the attenuation in dB over ``distance`` metres."""

        if distance < 0:
            raise ValueError("distance must be >= 0")
        cfg = self.config
        model = cfg.propagation_loss
        if model == "none":
            return 0.0
        if model == "friis":
            if distance == 0.0:
                return cfg.min_loss_dB
            loss = 20.0 * math.log10(4.0 * math.pi * distance / self.wavelength_m)
            loss += 10.0 * math.log10(cfg.system_loss)
            return max(loss, cfg.min_loss_dB)
        if distance <= cfg.reference_distance_m:
            return 0.0
        return cfg.reference_loss_dB + 10.0 * cfg.path_loss_exponent * math.log10(
            distance / cfg.reference_distance_m
        )

    def rx_power(self, tx_power_dBm: float, distance: float) -> float:
        return tx_power_dBm - self.path_loss(distance)

    def snr_dB(self, rx_power_dBm: float) -> float:
        return rx_power_dBm - self.noise_floor_dBm

    def can_decode(self, rx_power_dBm: float) -> bool:
        """Whether a frame received at ``rx_power_dBm`` is decodable without interference."""

        cfg = self.config
        if rx_power_dBm < cfg.rx_sensitivity_dBm:
            return False
        return self.snr_dB(rx_power_dBm) >= cfg.min_snr_dB

    def propagation_delay(self, distance: float) -> float:
        return distance / self.config.propagation_speed

    def link(self, tx_position, rx_position, tx_power_dBm: float) -> tuple[float, float, bool]:
        """Return ``(rx_power_dBm, delay_s, decodable)`` between two positions."""

        distance = math.dist(tx_position, rx_position)
        rx_power = self.rx_power(tx_power_dBm, distance)
        return rx_power, self.propagation_delay(distance), self.can_decode(rx_power)


__all__ = ["SPEED_OF_LIGHT", "ChannelConfig", "WifiChannel"]
