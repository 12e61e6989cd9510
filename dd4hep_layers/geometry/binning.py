"""
Binning descriptions used for material mapping and surface lookup.

A BinningData describes how one coordinate (x, y, z, r or phi) is cut into
ordered bins; a BinUtility composes up to three of them. Closed axes wrap
around (phi), open axes clamp to the first / last bin.
"""

import enum
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np


class BinningType(enum.Enum):
    equidistant = 0
    arbitrary = 1


class BinningOption(enum.Enum):
    open = 0
    closed = 1


class BinningValue(enum.Enum):
    binX = 0
    binY = 1
    binZ = 2
    binR = 3
    binPhi = 4


def coordinate_value(position, value: BinningValue) -> float:
    """Extract the requested coordinate from a 3D position"""
    x, y, z = (float(c) for c in position)
    if value == BinningValue.binX:
        return x
    if value == BinningValue.binY:
        return y
    if value == BinningValue.binZ:
        return z
    if value == BinningValue.binR:
        return math.hypot(x, y)
    return math.atan2(y, x)


class BinningData:
    """One binned axis"""

    def __init__(self, option: BinningOption, value: BinningValue,
                 bins: int = 1, min_value: float = 0.0, max_value: float = 1.0,
                 boundaries: Optional[Sequence[float]] = None):
        self.option = option
        self.value = value
        if boundaries is not None:
            edges = np.asarray(sorted(boundaries), dtype=float)
            if len(edges) < 2:
                raise ValueError("Arbitrary binning needs at least two boundaries")
            self.type = BinningType.arbitrary
            self.boundaries = edges
            self.min = float(edges[0])
            self.max = float(edges[-1])
            self.bins = len(edges) - 1
        else:
            if bins < 1:
                raise ValueError(f"Number of bins must be positive, got {bins}")
            self.type = BinningType.equidistant
            self.min = float(min_value)
            self.max = float(max_value)
            self.bins = int(bins)
            self.boundaries = np.linspace(self.min, self.max, self.bins + 1)
        self.step = (self.max - self.min) / self.bins

    def search(self, coordinate: float) -> int:
        """Bin index for a coordinate value"""
        if self.type == BinningType.equidistant:
            if self.step == 0:
                return 0
            index = int(math.floor((coordinate - self.min) / self.step))
        else:
            index = int(np.searchsorted(self.boundaries, coordinate, side='right')) - 1

        if self.option == BinningOption.closed:
            return index % self.bins
        return min(max(index, 0), self.bins - 1)

    def center(self, index: int) -> float:
        return 0.5 * (self.boundaries[index] + self.boundaries[index + 1])

    def __eq__(self, other):
        if not isinstance(other, BinningData):
            return NotImplemented
        return (self.option == other.option and self.value == other.value
                and self.type == other.type
                and np.allclose(self.boundaries, other.boundaries))

    def __repr__(self):
        return (f"BinningData({self.value.name}, {self.option.name}, "
                f"bins={self.bins}, range=[{self.min:.3f}, {self.max:.3f}])")


class BinUtility:
    """
    Composition of up to three binned axes.

    An optional transform maps global positions into the local frame in
    which the binning is defined.
    """

    def __init__(self, bins: Optional[int] = None, min_value: float = 0.0,
                 max_value: float = 1.0, option: BinningOption = BinningOption.open,
                 value: BinningValue = BinningValue.binX, transform=None):
        self.binning_data: List[BinningData] = []
        self.transform = transform
        if bins is not None:
            self.binning_data.append(BinningData(option, value, bins, min_value, max_value))

    @classmethod
    def from_binning_data(cls, binning_data: BinningData, transform=None):
        utility = cls(transform=transform)
        utility.binning_data.append(binning_data)
        return utility

    def __iadd__(self, other: 'BinUtility'):
        if len(self.binning_data) + len(other.binning_data) > 3:
            raise ValueError("BinUtility supports at most three dimensions")
        self.binning_data.extend(other.binning_data)
        if self.transform is None:
            self.transform = other.transform
        return self

    def dimensions(self) -> int:
        return len(self.binning_data)

    def bins_per_axis(self) -> Tuple[int, ...]:
        return tuple(data.bins for data in self.binning_data)

    def bins(self) -> int:
        total = 1
        for data in self.binning_data:
            total *= data.bins
        return total

    def bin(self, position) -> Tuple[int, ...]:
        """Bin index tuple for a global position"""
        local = position
        if self.transform is not None:
            local = self.transform.inverse_apply(position)
        return tuple(data.search(coordinate_value(local, data.value))
                     for data in self.binning_data)

    def __eq__(self, other):
        if not isinstance(other, BinUtility):
            return NotImplemented
        return self.binning_data == other.binning_data

    def __repr__(self):
        return f"BinUtility({self.binning_data})"
