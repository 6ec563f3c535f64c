"""
Copyright © 2023 Howard Hughes Medical Institute, Authored by Carsen Stringer and Marius Pachitariu.
"""
import numpy as np

from ..errors import ConfigurationError, SizeMismatchError


def check_window_length(window_length) -> int:
    if isinstance(window_length, (bool, np.bool_)) or not isinstance(window_length, (int, np.integer)):
        raise ConfigurationError(f"window length must be an integer, got {window_length!r}")
    if window_length < 1:
        raise ConfigurationError(f"window length must be >= 1, got {window_length}")
    return int(window_length)


def window_offsets(window_length: int) -> np.ndarray:
    """
    Returns the frame offsets of a moving window relative to its current frame

    An odd window is centered on the current frame, an even window reaches one
    frame further forward than backward, e.g. 4 -> [-1, 0, 1, 2].

    Parameters
    ----------
    window_length: int

    Returns
    -------
    offsets: int array, size [window_length]
    """
    window_length = check_window_length(window_length)
    return np.arange(int(np.ceil(-(window_length - 1) / 2)), window_length // 2 + 1)


class FrameWindow:

    def __init__(self, window_length: int):
        """
        Ring buffer with the last 'window_length' frames and their sum

        The sum ignores missing (NaN) samples; a pixel is missing in the sum
        only if it is missing in every frame of the window. The sum is updated
        in place on each advance() and recomputed from the buffer once per
        full turn of the ring.

        Parameters
        ----------
        window_length: int
            The number of frames in the window
        """
        self.window_length = check_window_length(window_length)
        self._frames = None
        self._index = 0
        self._total = None
        self._count = None

    def __len__(self):
        return self.window_length

    @property
    def initialized(self) -> bool:
        return self._frames is not None

    def initialize(self, frames: np.ndarray) -> np.ndarray:
        """
        Fills the window, returns the sum of 'frames'

        Parameters
        ----------
        frames: window_length x Ly x Lx
            The first window of frames, oldest first
        """
        frames = np.array(frames, dtype=np.float64)
        if frames.ndim != 3 or frames.shape[0] != self.window_length:
            raise SizeMismatchError(
                f"window of length {self.window_length} cannot be filled with frames of shape {frames.shape}")
        self._frames = frames
        self._index = 0
        self._resum()
        return self.current_sum()

    def advance(self, frame: np.ndarray) -> np.ndarray:
        """
        Replaces the oldest frame in the window by 'frame', returns the new sum

        Parameters
        ----------
        frame: Ly x Lx
        """
        if not self.initialized:
            raise RuntimeError("window must be initialized before it can advance")
        frame = np.asarray(frame, dtype=np.float64)
        if frame.shape != self._frames.shape[1:]:
            raise SizeMismatchError(
                f"frame of shape {frame.shape} does not fit window frames of shape {self._frames.shape[1:]}")

        old = self._frames[self._index]
        old_valid, new_valid = ~np.isnan(old), ~np.isnan(frame)
        self._total -= np.where(old_valid, old, 0.)
        self._total += np.where(new_valid, frame, 0.)
        self._count -= old_valid
        self._count += new_valid
        self._frames[self._index] = frame

        self._index = (self._index + 1) % self.window_length
        if self._index == 0:
            # one full turn, drop accumulated rounding error
            self._resum()
        return self.current_sum()

    def current_sum(self) -> np.ndarray:
        """ sum of the frames in the window, NaN where no frame has a valid sample """
        if not self.initialized:
            raise RuntimeError("window has not been initialized")
        return np.where(self._count > 0, self._total, np.nan)

    def _resum(self):
        valid = ~np.isnan(self._frames)
        self._total = np.where(valid, self._frames, 0.).sum(axis=0)
        self._count = valid.sum(axis=0)
