"""
Copyright © 2023 Howard Hughes Medical Institute, Authored by Carsen Stringer and Marius Pachitariu.
"""
from typing import Callable, Sequence, Tuple

import numpy as np

from ..errors import ConfigurationError, SizeMismatchError
from .utils import nansum


class ChannelCombiner:
    """
    Reduces a frames x Ly x Lx x channels slab to the frames x Ly x Lx
    images used for registration.

    Subclasses set 'channels', the channel indices read from the stack, and
    implement combine(). Calling the combiner checks the output shape.
    """
    channels: Tuple[int, ...] = ()

    def combine(self, slab: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def __call__(self, slab: np.ndarray) -> np.ndarray:
        combined = np.asarray(self.combine(slab))
        if combined.shape != slab.shape[:3]:
            raise SizeMismatchError(
                f"channel combination returned shape {combined.shape}, expected {slab.shape[:3]}")
        return combined

    def __repr__(self):
        return f"{type(self).__name__}(channels={list(self.channels)})"


class SingleChannel(ChannelCombiner):
    """ use one channel as it is """

    def __init__(self, channel: int):
        self.channels = (_channel_index(channel),)

    def combine(self, slab):
        return slab[..., 0]


class SummedChannels(ChannelCombiner):
    """ sum of several channels, ignoring missing samples """

    def __init__(self, channels: Sequence[int]):
        self.channels = tuple(_channel_index(c) for c in channels)
        if len(self.channels) == 0:
            raise ConfigurationError("at least one channel is needed for alignment")

    def combine(self, slab):
        return nansum(slab, axis=-1)


class CustomReducer(ChannelCombiner):
    """
    Channels combined by a user function

    'func' is called with the frames x Ly x Lx x channels slab holding the
    requested channels and must return frames x Ly x Lx, e.g.
    CustomReducer(lambda t: np.nanmax(t, axis=-1), [0, 1]).
    """

    def __init__(self, func: Callable[[np.ndarray], np.ndarray], channels: Sequence[int]):
        if not callable(func):
            raise ConfigurationError("channel combination function must be callable")
        self.func = func
        self.channels = tuple(_channel_index(c) for c in np.atleast_1d(channels))
        if len(self.channels) == 0:
            raise ConfigurationError("at least one channel is needed for alignment")

    def combine(self, slab):
        return self.func(slab)


def _channel_index(channel) -> int:
    if isinstance(channel, (bool, np.bool_)) or not isinstance(channel, (int, np.integer)):
        raise ConfigurationError(f"channel index must be an integer, got {channel!r}")
    if channel < 0:
        raise ConfigurationError(f"channel index must be >= 0, got {channel}")
    return int(channel)


def resolve_channels(channels) -> ChannelCombiner:
    """
    Returns the ChannelCombiner for a channel specification

    Parameters
    ----------
    channels: int, sequence of int, (callable, channels) or ChannelCombiner
        A single channel index is used as is, several channel indices are summed
        (ignoring missing samples), and a (func, channels) pair combines the
        given channels with func.

    Returns
    -------
    combiner: ChannelCombiner
    """
    if isinstance(channels, ChannelCombiner):
        return channels
    if isinstance(channels, (int, np.integer)) and not isinstance(channels, (bool, np.bool_)):
        return SingleChannel(channels)
    if isinstance(channels, tuple) and len(channels) == 2 and callable(channels[0]):
        return CustomReducer(*channels)
    if isinstance(channels, (list, tuple, np.ndarray)):
        return SummedChannels(list(np.asarray(channels).ravel()))
    raise ConfigurationError(f"cannot use {channels!r} as channel specification")
