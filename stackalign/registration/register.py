"""
Copyright © 2023 Howard Hughes Medical Institute, Authored by Carsen Stringer and Marius Pachitariu.
"""
import time
import logging
from typing import Iterator, List, Optional, Tuple

import numpy as np
import torch
from tqdm import tqdm

from ..parameters import default_settings
from ..errors import BoundsError, ConfigurationError, SizeMismatchError
from ..logger import TqdmToLogger
from ..stack import as_stack, normalization_override
from .channels import ChannelCombiner, resolve_channels
from .rigid import check_upsampling, dft_registration
from .utils import check_cutoff, frame_spectrum, nansum, spatial_band_pass
from .window import FrameWindow, window_offsets

logger = logging.getLogger(__name__)


def check_reference(reference, progressive: bool, n_frames: int, frame_shape: Tuple[int, int]):
    """
    checks the reference argument of compute_stack_alignment

    Returns None, an int frame index, or a float64 Ly x Lx reference image.
    """
    if reference is None:
        return None
    if progressive:
        raise ConfigurationError("cannot provide a reference for progressive alignment")
    ref = np.asarray(reference)
    if ref.ndim == 0:
        if ref.dtype == bool or not np.issubdtype(ref.dtype, np.integer):
            raise ConfigurationError(f"reference frame must be an integer index, got {reference!r}")
        if not 0 <= int(ref) < n_frames:
            raise BoundsError(f"reference frame {int(ref)} outside stack of {n_frames} frames")
        return int(ref)
    if ref.shape != tuple(frame_shape):
        raise SizeMismatchError(
            f"reference image is the wrong size: {ref.shape}, frames are {tuple(frame_shape)}")
    return ref.astype(np.float64)


def check_trial_ranges(trial_ranges, n_frames: int,
                       offsets: np.ndarray) -> List[Tuple[int, int, int, int]]:
    """
    checks trial blocks against the stack and the averaging window

    Parameters
    ----------
    trial_ranges: list of (first_frame, last_frame), or None
        Inclusive trial blocks, increasing and non-overlapping
    n_frames: int
    offsets: int array
        window offsets from window_offsets

    Returns
    -------
    trials: list of (start, end, first, last)
        The trial block and the frames inside it whose window lies entirely in the block
    """
    if trial_ranges is None:
        trial_ranges = [(0, n_frames - 1)]
    ranges = np.asarray(trial_ranges)
    if ranges.ndim == 1 and ranges.size == 2:
        ranges = ranges[np.newaxis]
    if ranges.ndim != 2 or ranges.shape[1] != 2 or ranges.shape[0] == 0:
        raise ConfigurationError(f"trial ranges must be (first_frame, last_frame) pairs, got {trial_ranges!r}")
    if not np.issubdtype(ranges.dtype, np.integer):
        raise ConfigurationError(f"trial ranges must be integer frame indices, got {trial_ranges!r}")

    trials = []
    prev_end = -1
    for start, end in ranges.tolist():
        if start > end:
            raise BoundsError(f"trial ({start}, {end}) ends before it starts")
        if start < 0 or end >= n_frames:
            raise BoundsError(f"trial ({start}, {end}) outside stack of {n_frames} frames")
        if start <= prev_end:
            raise BoundsError(f"trial ({start}, {end}) overlaps or precedes the previous trial")
        first, last = start - int(offsets[0]), end - int(offsets[-1])
        if first > last:
            raise BoundsError(
                f"trial ({start}, {end}) is shorter than the window of {len(offsets)} frames")
        trials.append((start, end, first, last))
        prev_end = end
    return trials


def read_combined(stack, combiner: ChannelCombiner, frames) -> np.ndarray:
    """ reads 'frames' with the channels of 'combiner', returns frames x Ly x Lx """
    return combiner(stack.read(frames, combiner.channels))


def iter_combined(stack, combiner: ChannelCombiner, frames: np.ndarray,
                  batch_size: int = 100) -> Iterator[np.ndarray]:
    """ yields combined frames one by one, reading 'batch_size' frames at a time """
    for k in range(0, len(frames), batch_size):
        yield from read_combined(stack, combiner, frames[k:k + batch_size])


def reference_window(stack, combiner: ChannelCombiner, frame: int, offsets: np.ndarray) -> np.ndarray:
    """ sum of the combined frames in the window around 'frame', window clipped to the stack """
    frames = frame + offsets
    frames = frames[(frames >= 0) & (frames < stack.n_frames)]
    return nansum(read_combined(stack, combiner, frames), axis=0)


def accumulate_offsets(offsets: np.ndarray) -> np.ndarray:
    """ converts frame-to-frame offsets into offsets relative to the first frame """
    return np.cumsum(offsets, axis=0)


def compute_stack_alignment(stack, channels=0, progressive: bool = False, upsampling: int = 1,
                            reference=None, window_length: int = 1,
                            spatial_freq_cutoff=(0., np.inf), trial_ranges=None,
                            batch_size: int = 100, device=torch.device("cpu"),
                            return_corr: bool = False):
    """
    Computes the rigid shift of every frame of a stack, at sub-pixel resolution if requested

    Each frame is summed over a moving window of 'window_length' frames,
    band-pass filtered in the Fourier domain and registered against a
    reference by phase correlation. Averaging windows never cross trial
    blocks; frames at the edges of a block, whose window would leave it, take
    the shift of the nearest frame with a full window (before the first full
    window only the vertical shift is copied, the horizontal shift stays 0).

    Parameters
    ----------
    stack: array or stack object
        n_frames x Ly x Lx (x n_channels) array, or an object with 'read(frames,
        channels)', 'normalization', 'n_frames', 'Ly' and 'Lx' like ArrayStack
    channels: int, list of int, (func, channels) or ChannelCombiner
        Channel used for alignment; several channels are summed ignoring
        missing samples, func combines n x Ly x Lx x nchannels to n x Ly x Lx
    progressive: bool
        Register each frame to the previous one and accumulate the shifts,
        instead of registering all frames to one reference
    upsampling: int
        Shifts are computed to 1 / upsampling pixels
    reference: 2D array or int (optional)
        Reference image (Ly x Lx), or index of the frame whose window is used
        as reference. Defaults to the first window of the first trial block.
    window_length: int
        Number of frames summed in the moving window
    spatial_freq_cutoff: float, float
        (fmin, fmax) band of spatial frequencies used, in cycles / pixel
    trial_ranges: list of (first_frame, last_frame) (optional)
        Inclusive trial blocks, defaults to one block with all frames
    batch_size: int
        Number of frames read from the stack at a time
    device: torch.device
        Device used for the Fourier transforms
    return_corr: bool
        Also return the normalized cross-correlation of each frame with its reference

    Returns
    -------
    frame_offsets: n_frames x 2
        (vertical, horizontal) shift of each frame; shifting a frame by minus
        its offset aligns it with the reference
    corr: n_frames (if return_corr)
        normalized cross-correlation at the registration peak
    """
    stack = as_stack(stack)
    n_frames, Ly, Lx = stack.n_frames, stack.Ly, stack.Lx

    # -- check arguments before reading any data
    combiner = resolve_channels(channels)
    upsampling = check_upsampling(upsampling)
    offsets = window_offsets(window_length)
    cutoff = check_cutoff(spatial_freq_cutoff)
    reference = check_reference(reference, progressive, n_frames, (Ly, Lx))
    trials = check_trial_ranges(trial_ranges, n_frames, offsets)
    if batch_size < 1:
        raise ConfigurationError(f"batch_size must be >= 1, got {batch_size}")

    spat_filter = torch.from_numpy(spatial_band_pass(Ly, Lx, cutoff).astype(np.float64)).to(device)

    frame_offsets = np.zeros((n_frames, 2), dtype=np.float64)
    corr = np.zeros(n_frames, dtype=np.float64)
    n_inner = sum(last - first + 1 for _, _, first, last in trials)
    logger.info(f"Aligning {n_inner} frames in {len(trials)} trial blocks "
                f"({combiner}, window {len(offsets)}, upsampling {upsampling}, "
                f"{'progressive' if progressive else 'fixed reference'})")

    t0 = time.time()
    with normalization_override(stack, "none"):
        # -- reference spectrum, computed once for all trials
        ref_fft = None
        if isinstance(reference, np.ndarray):
            logger.info("Using supplied reference image")
            ref_fft = frame_spectrum(reference, spat_filter)
        elif reference is not None:
            logger.info(f"Using window around frame {reference} as reference")
            ref_fft = frame_spectrum(reference_window(stack, combiner, reference, offsets),
                                     spat_filter)

        tqdm_out = TqdmToLogger(logger, level=logging.INFO)
        with tqdm(total=n_inner, mininterval=10, file=tqdm_out) as pbar:
            for start, end, first, last in trials:
                logger.debug(f"trial ({start}, {end}): full windows for frames {first}..{last}")
                window = FrameWindow(len(offsets))
                frame_sum = window.initialize(read_combined(stack, combiner, first + offsets))
                if ref_fft is None:
                    ref_fft = frame_spectrum(frame_sum, spat_filter)

                entering = iter_combined(stack, combiner,
                                         np.arange(first + 1, last + 1) + offsets[-1], batch_size)
                for n in range(first, last + 1):
                    if n > first:
                        frame_sum = window.advance(next(entering))
                    frame_fft = frame_spectrum(frame_sum, spat_filter)
                    ymax, xmax, cmax = dft_registration(ref_fft, frame_fft, upsampling)
                    frame_offsets[n] = ymax, xmax
                    corr[n] = cmax

                    # register the next frame against this one
                    if progressive:
                        ref_fft = frame_fft
                    pbar.update(1)

                # frames at the trial edges take the shift of the nearest full window
                frame_offsets[start:first, 0] = frame_offsets[first, 0]
                frame_offsets[last + 1:end + 1] = frame_offsets[last]
                corr[start:first] = corr[first]
                corr[last + 1:end + 1] = corr[last]

    if progressive:
        frame_offsets = accumulate_offsets(frame_offsets)
    logger.info("Stack alignment, %0.2f sec." % (time.time() - t0))

    if return_corr:
        return frame_offsets, corr
    return frame_offsets


def alignment_wrapper(stack, settings=default_settings(), device: Optional[torch.device] = None,
                      return_corr: bool = False):
    """
    Computes the stack alignment with the "alignment" options of 'settings'

    Args:
        stack (array): n_frames x Ly x Lx (x n_channels) np.ndarray or stack object such as ArrayStack.
        settings (dict, optional): Settings dictionary, see stackalign.default_settings(). Defaults to default_settings().
        device (torch.device, optional): Device for the Fourier transforms. Defaults to settings["torch_device"].
        return_corr (bool, optional): Also return the per-frame correlation. Defaults to False.

    Returns:
        frame_offsets (np.ndarray): n_frames x 2 (vertical, horizontal) shift of each frame.
    """
    align = {**default_settings()["alignment"], **settings.get("alignment", {})}
    if device is None:
        device = torch.device(settings.get("torch_device", "cpu"))
    return compute_stack_alignment(stack, channels=align["channels"],
                                   progressive=align["progressive"],
                                   upsampling=align["upsampling"],
                                   reference=align["reference"],
                                   window_length=align["window_length"],
                                   spatial_freq_cutoff=align["spatial_freq_cutoff"],
                                   trial_ranges=align["trial_ranges"],
                                   batch_size=align["batch_size"], device=device,
                                   return_corr=return_corr)
