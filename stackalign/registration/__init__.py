"""
Copright © 2023 Howard Hughes Medical Institute, Authored by Carsen Stringer and Marius Pachitariu.
"""
from .register import compute_stack_alignment, alignment_wrapper, accumulate_offsets
from .channels import ChannelCombiner, SingleChannel, SummedChannels, CustomReducer, resolve_channels
from .rigid import dft_registration, shift_frames
from .utils import spatial_band_pass
from .window import FrameWindow, window_offsets
