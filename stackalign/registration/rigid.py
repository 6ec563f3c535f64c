"""
Copyright © 2023 Howard Hughes Medical Institute, Authored by Carsen Stringer and Marius Pachitariu.
"""
from typing import Tuple

import numpy as np
from scipy.ndimage import fourier_shift
import torch

from ..errors import ConfigurationError, SizeMismatchError


def check_upsampling(upsampling) -> int:
    if isinstance(upsampling, (bool, np.bool_)) or not isinstance(upsampling, (int, np.integer)):
        raise ConfigurationError(f"upsampling must be an integer, got {upsampling!r}")
    if upsampling < 1:
        raise ConfigurationError(f"upsampling must be >= 1, got {upsampling}")
    return int(upsampling)


def upsampled_dft(data: torch.Tensor, region_size: Tuple[int, int], upsampling: int,
                  offsets: Tuple[float, float] = (0., 0.)) -> torch.Tensor:
    """
    Upsampled DFT of 'data' by matrix multiplication, evaluated over a small region

    Equivalent to zero-padding the spectrum 'upsampling' times, taking the
    inverse transform and cropping 'region_size' samples starting at
    'offsets', without computing the full upsampled transform.

    Parameters
    ----------
    data: Ly x Lx complex tensor
        The spectrum to upsample
    region_size: int, int
        The number of output samples in y and x
    upsampling: int
        The upsampling factor
    offsets: float, float
        The position of the first output sample, in upsampled pixels

    Returns
    -------
    output: region_size complex tensor
    """
    device = data.device
    Ly, Lx = data.shape
    ny, nx = region_size
    freq_y = torch.fft.ifftshift(torch.arange(Ly, dtype=torch.float64, device=device)) - Ly // 2
    freq_x = torch.fft.ifftshift(torch.arange(Lx, dtype=torch.float64, device=device)) - Lx // 2
    out_y = torch.arange(ny, dtype=torch.float64, device=device) - float(offsets[0])
    out_x = torch.arange(nx, dtype=torch.float64, device=device) - float(offsets[1])

    row_kernel = torch.exp((-2j * np.pi / (Ly * upsampling)) * torch.outer(out_y, freq_y))
    col_kernel = torch.exp((-2j * np.pi / (Lx * upsampling)) * torch.outer(freq_x, out_x))
    return row_kernel @ data.to(torch.complex128) @ col_kernel


def _peak(mag: torch.Tensor, to_shift) -> torch.Tensor:
    """ index of the maximum of 'mag'; equal maxima go to the smallest |dy| + |dx| shift """
    candidates = torch.nonzero(mag == mag.max())
    dy, dx = to_shift(candidates[:, 0], candidates[:, 1])
    return candidates[torch.argmin(dy.abs() + dx.abs())]


def dft_registration(ref_fft: torch.Tensor, frame_fft: torch.Tensor,
                     upsampling: int = 1) -> Tuple[float, float, float]:
    """
    Sub-pixel shift between two images from their spectra

    The cross-power spectrum is inverted to locate the correlation peak to one
    pixel; with upsampling > 1 the peak is refined to 1 / upsampling pixels by
    an upsampled DFT over a 1.5 pixel neighborhood of the coarse peak.

    Citation: Manuel Guizar-Sicairos, Samuel T. Thurman, and James R. Fienup,
    "Efficient subpixel image registration algorithms," Opt. Lett. 33,
    156-158 (2008).

    Parameters
    ----------
    ref_fft: Ly x Lx complex tensor
        fft2 of the reference image
    frame_fft: Ly x Lx complex tensor
        fft2 of the image to register
    upsampling: int
        shifts are estimated to 1 / upsampling pixels

    Returns
    -------
    ymax: float
        vertical shift of the frame relative to the reference
    xmax: float
        horizontal shift of the frame relative to the reference
    cmax: float
        normalized cross-correlation at the peak, 0 for images with no energy
    """
    if ref_fft.shape != frame_fft.shape:
        raise SizeMismatchError(
            f"reference spectrum {tuple(ref_fft.shape)} and frame spectrum {tuple(frame_fft.shape)} differ")
    upsampling = check_upsampling(upsampling)
    Ly, Lx = ref_fft.shape

    product = (ref_fft * frame_fft.conj()).to(torch.complex128)
    torch.nan_to_num_(torch.view_as_real(product), nan=0., posinf=0., neginf=0.)

    # whole-pixel shift from the correlation peak
    cc = torch.fft.ifft2(product)

    def wrap(iy, ix):
        return (torch.where(iy > Ly // 2, iy - Ly, iy),
                torch.where(ix > Lx // 2, ix - Lx, ix))

    iy, ix = _peak(cc.abs(), wrap)
    dy, dx = (int(s) for s in wrap(iy, ix))
    cc_max = cc[iy, ix] * (Ly * Lx)

    if upsampling > 1:
        region = int(np.ceil(1.5 * upsampling))
        dftshift = region // 2
        offsets = (dftshift - dy * upsampling, dftshift - dx * upsampling)
        cc_up = upsampled_dft(product.conj(), (region, region), upsampling, offsets).conj()

        def subpixel(iy, ix):
            return (dy + (iy - dftshift) / upsampling,
                    dx + (ix - dftshift) / upsampling)

        iy, ix = _peak(cc_up.abs(), subpixel)
        dy, dx = (float(s) for s in subpixel(iy, ix))
        cc_max = cc_up[iy, ix]

    # a shift along a singleton axis has no effect
    dy = 0. if Ly == 1 else float(dy)
    dx = 0. if Lx == 1 else float(dx)

    ref_energy = torch.nansum(ref_fft.abs()**2).item()
    frame_energy = torch.nansum(frame_fft.abs()**2).item()
    norm = np.sqrt(ref_energy * frame_energy)
    cmax = float(cc_max.abs().item() / norm) if norm > 0 else 0.

    # the peak of ref * conj(frame) sits at minus the frame displacement
    return -dy + 0., -dx + 0., cmax


def shift_frames(frames: np.ndarray, offsets: np.ndarray) -> np.ndarray:
    """
    Moves each frame by minus its offset, aligning it with the reference

    Integer offsets are applied with a circular roll, fractional offsets with a
    Fourier shift.

    Parameters
    ----------
    frames: nframes x Ly x Lx
    offsets: nframes x 2
        (vertical, horizontal) offsets from compute_stack_alignment

    Returns
    -------
    shifted: nframes x Ly x Lx, float64
    """
    frames = np.asarray(frames, dtype=np.float64)
    offsets = np.asarray(offsets, dtype=np.float64)
    if frames.ndim != 3 or offsets.shape != (frames.shape[0], 2):
        raise SizeMismatchError(
            f"offsets of shape {offsets.shape} do not match frames of shape {frames.shape}")

    fr_torch = torch.from_numpy(frames)
    shifted = np.empty(frames.shape, dtype=np.float64)
    for n, (dy, dx) in enumerate(offsets):
        if dy.is_integer() and dx.is_integer():
            shifted[n] = torch.roll(fr_torch[n], shifts=(-int(dy), -int(dx)), dims=(0, 1)).numpy()
        else:
            shifted[n] = np.real(np.fft.ifft2(fourier_shift(np.fft.fft2(frames[n]), (-dy, -dx))))
    return shifted
