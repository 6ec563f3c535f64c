"""
Copyright © 2023 Howard Hughes Medical Institute, Authored by Carsen Stringer and Marius Pachitariu.
"""
from contextlib import contextmanager
from typing import Optional, Sequence, Tuple

import numpy as np

from .errors import BoundsError, ConfigurationError, SizeMismatchError

NORMALIZATIONS = ("none", "subtract", "ratio")


class ArrayStack:

    def __init__(self, data: np.ndarray, blank: Optional[np.ndarray] = None,
                 normalization: str = "none", black_level: float = 0.,
                 subtract_black: bool = False):
        """
        Image stack held in memory that can be read by frames and channels

        Parameters
        ----------
        data: n_frames x Ly x Lx, or n_frames x Ly x Lx x n_channels
            The frames of the recording
        blank: Ly x Lx, or Ly x Lx x n_channels (optional)
            Blank (baseline) image used by the "subtract" and "ratio" normalizations
        normalization: str
            "none", "subtract" (data - blank) or "ratio" (data / blank)
        black_level: float
            Camera black level removed from the data when subtract_black is set
        subtract_black: bool
            Whether to remove black_level from the data when reading
        """
        data = np.asarray(data)
        if data.ndim == 3:
            data = data[..., np.newaxis]
        if data.ndim != 4:
            raise SizeMismatchError(
                f"stack must be n_frames x Ly x Lx (x n_channels), got shape {data.shape}")
        if data.shape[0] < 1:
            raise SizeMismatchError("stack has no frames")
        self.data = data
        self.blank = None
        if blank is not None:
            blank = np.asarray(blank, dtype=np.float64)
            if blank.ndim == 2:
                blank = blank[..., np.newaxis]
            if blank.shape[:2] != (self.Ly, self.Lx) or blank.shape[2] not in (1, self.n_channels):
                raise SizeMismatchError(
                    f"blank image of shape {blank.shape} does not match frames of shape {self.frame_shape}")
            self.blank = blank
        self.black_level = black_level
        self.subtract_black = subtract_black
        self._normalization = "none"
        self.normalization = normalization

    @property
    def n_frames(self) -> int:
        return self.data.shape[0]

    @property
    def Ly(self) -> int:
        return self.data.shape[1]

    @property
    def Lx(self) -> int:
        return self.data.shape[2]

    @property
    def n_channels(self) -> int:
        return self.data.shape[3]

    @property
    def frame_shape(self) -> Tuple[int, int]:
        return self.Ly, self.Lx

    @property
    def shape(self) -> Tuple[int, int, int, int]:
        """
        The dimensions of the stack

        Returns
        -------
        n_frames: int
            The number of frames
        Ly: int
            The height of each frame
        Lx: int
            The width of each frame
        n_channels: int
            The number of channels
        """
        return self.data.shape

    @property
    def normalization(self) -> str:
        return self._normalization

    @normalization.setter
    def normalization(self, mode: str):
        if mode not in NORMALIZATIONS:
            raise ConfigurationError(
                f"normalization must be one of {NORMALIZATIONS}, got {mode!r}")
        if mode != "none" and self.blank is None:
            raise ConfigurationError(f"normalization {mode!r} needs a blank image")
        self._normalization = mode

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        pass

    def __len__(self):
        return self.n_frames

    def __getitem__(self, indices):
        return self.data[indices]

    def read(self, frames: Sequence[int], channels: Sequence[int]) -> np.ndarray:
        """
        Returns the requested frames and channels in one read

        Parameters
        ----------
        frames: int array
            The frame indices to read
        channels: int array
            The channel indices to read

        Returns
        -------
        slab: len(frames) x Ly x Lx x len(channels), float64
            Normalized with the current normalization mode
        """
        frames = np.atleast_1d(np.asarray(frames, dtype=np.int64))
        channels = np.atleast_1d(np.asarray(channels, dtype=np.int64))
        if frames.size and (frames.min() < 0 or frames.max() >= self.n_frames):
            raise BoundsError(
                f"frames {frames.min()}..{frames.max()} outside stack of {self.n_frames} frames")
        if channels.size and (channels.min() < 0 or channels.max() >= self.n_channels):
            raise BoundsError(
                f"channels {channels.tolist()} outside stack of {self.n_channels} channels")

        slab = self.data[np.ix_(frames, np.arange(self.Ly), np.arange(self.Lx), channels)]
        slab = slab.astype(np.float64)
        if self.subtract_black:
            slab -= self.black_level
        if self._normalization != "none":
            blank = self.blank if self.blank.shape[2] == 1 else self.blank[..., channels]
            if self._normalization == "subtract":
                slab -= blank
            else:
                with np.errstate(divide="ignore", invalid="ignore"):
                    slab = np.where(blank != 0, slab / blank, np.nan)
        return slab


def as_stack(stack):
    """ wraps numpy arrays in an ArrayStack, stack objects are returned as they are """
    if hasattr(stack, "read") and hasattr(stack, "normalization"):
        return stack
    return ArrayStack(stack)


@contextmanager
def normalization_override(stack, mode: str = "none"):
    """
    context manager that switches the stack normalization to 'mode', and turns
    off black level subtraction, restoring both upon exit (also on errors)
    """
    orig_mode = stack.normalization
    orig_black = getattr(stack, "subtract_black", None)
    stack.normalization = mode
    if orig_black is not None:
        stack.subtract_black = False
    try:
        yield stack
    finally:
        stack.normalization = orig_mode
        if orig_black is not None:
            stack.subtract_black = orig_black
