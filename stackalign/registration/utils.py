"""
Copyright © 2023 Howard Hughes Medical Institute, Authored by Carsen Stringer and Marius Pachitariu.
"""
from typing import Tuple

import numpy as np
from numba import vectorize
import torch

from ..errors import ConfigurationError


@vectorize(["float64(float64, float64)", "float32(float32, float32)"], nopython=True, cache=True)
def nanadd(x, y):
    """ add that ignores missing (NaN) samples, NaN only if both are missing """
    if np.isnan(x):
        return y
    if np.isnan(y):
        return x
    return x + y


def nansum(data: np.ndarray, axis: int = -1) -> np.ndarray:
    """
    Returns the sum of 'data' over 'axis', ignoring missing (NaN) samples

    A pixel where every sample is missing stays missing (NaN), unlike np.nansum
    which would return zero.

    Parameters
    ----------
    data: array
    axis: int
        The axis to sum over

    Returns
    -------
    summed: array with 'axis' removed
    """
    return nanadd.reduce(np.asarray(data, dtype=np.float64), axis=axis)


def check_cutoff(cutoff) -> Tuple[float, float]:
    """ returns the (fmin, fmax) spatial frequency cutoff in cycles / pixel, sorted """
    try:
        fmin, fmax = sorted(float(f) for f in cutoff)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"spatial frequency cutoff must be a pair of numbers, got {cutoff!r}")
    if np.isnan(fmin) or np.isnan(fmax):
        raise ConfigurationError("spatial frequency cutoff cannot be NaN")
    return fmin, fmax


def spatial_band_pass(Ly: int, Lx: int, cutoff=(0., np.inf)) -> np.ndarray:
    """
    band-pass filter in the fft domain keeping spatial frequencies within cutoff

    The filter is laid out like the output of fft2 (zero frequency first, not
    fftshifted). A frequency is kept when fmin <= r <= fmax, with r the radial
    frequency in cycles / pixel; fmin = 0 keeps the DC term and fmax = inf
    keeps the Nyquist edge.

    Parameters
    ----------
    Ly: int
        frame height
    Lx: int
        frame width
    cutoff: float, float
        (fmin, fmax) in cycles / pixel

    Returns
    -------
    spat_filter: bool array, Ly x Lx
        band-pass filter in Fourier domain
    """
    fmin, fmax = check_cutoff(cutoff)
    fy = np.fft.fftfreq(Ly)
    fx = np.fft.fftfreq(Lx)
    yy, xx = np.meshgrid(fy, fx, indexing="ij")
    radius = np.sqrt(yy**2 + xx**2)

    spat_filter = np.zeros((Ly, Lx), dtype=bool)
    spat_filter[radius >= fmin] = True
    spat_filter[radius > fmax] = False
    return spat_filter


def frame_spectrum(img: np.ndarray, spat_filter: torch.Tensor) -> torch.Tensor:
    """
    Returns the band-pass filtered fft of the 2D image 'img'

    Missing (NaN) pixels contribute no energy to the spectrum.

    Parameters
    ----------
    img: Ly x Lx
        The image to process
    spat_filter: Ly x Lx torch tensor
        The band-pass filter from spatial_band_pass, on the torch device to use

    Returns
    -------
    fimg: Ly x Lx complex128 torch tensor
    """
    data = np.nan_to_num(np.asarray(img, dtype=np.float64), nan=0.)
    data = torch.from_numpy(data).to(spat_filter.device)
    return torch.fft.fft2(data) * spat_filter
