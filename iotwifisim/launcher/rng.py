"""Random number streams shared by the simulator components."""

from __future__ import annotations

import numpy as np


def mt19937(seed: int | np.random.SeedSequence | None = None) -> np.random.MT19937:
    """Return an MT19937 bit generator."""

    return np.random.MT19937(seed)


def create_generator(seed: int | None = None) -> np.random.Generator:
    """Return a Generator backed by MT19937."""

    return np.random.Generator(mt19937(seed))


class RngManager:
    """Hand out independent, reproducible streams per ``(name, index)``.

    ``seed`` selects the global seed and ``run`` the replication, the same
    way ns-3's ``RngSeedManager`` does: two managers built with the same pair
    return streams producing identical draws, while changing ``run`` alone is
    enough to obtain statistically independent replications.
    """

    def __init__(self, seed: int = 1, run: int = 1) -> None:
        self.seed = int(seed)
        self.run = int(run)
        self._streams: dict[tuple[str, int], np.random.Generator] = {}

    def _entropy(self, name: str, index: int) -> list[int]:
        tag = [ord(ch) for ch in name]
        return [self.seed, self.run, index, *tag]

    def get_stream(self, name: str, index: int = 0) -> np.random.Generator:
        key = (name, int(index))
        stream = self._streams.get(key)
        if stream is None:
            seq = np.random.SeedSequence(self._entropy(name, key[1]))
            stream = np.random.Generator(mt19937(seq))
            self._streams[key] = stream
        return stream


__all__ = ["mt19937", "create_generator", "RngManager"]
