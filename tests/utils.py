"""Utility functions to build synthetic stacks for the tests."""
import numpy as np
from scipy.ndimage import fourier_shift, gaussian_filter

from stackalign import ArrayStack


def smooth_image(rng, shape, sigma=2.):
    img = gaussian_filter(rng.standard_normal(shape), sigma, mode="wrap")
    return 100. * img / img.std() + 500.


def shift_image(img, dy, dx):
    """Moves 'img' by (dy, dx) pixels: circular roll for integers, Fourier shift otherwise."""
    if float(dy).is_integer() and float(dx).is_integer():
        return np.roll(img, (int(dy), int(dx)), axis=(0, 1))
    return np.real(np.fft.ifft2(fourier_shift(np.fft.fft2(img), (dy, dx))))


def shifted_stack(img, shifts):
    """Stack with one frame per (dy, dx) in 'shifts'."""
    return np.stack([shift_image(img, dy, dx) for dy, dx in shifts], axis=0)


class RecordingStack(ArrayStack):
    """ArrayStack that keeps the frame indices of every read."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.reads = []

    def read(self, frames, channels):
        self.reads.append(np.atleast_1d(np.asarray(frames)).tolist())
        return super().read(frames, channels)
