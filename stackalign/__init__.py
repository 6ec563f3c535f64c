"""
Copyright © 2023 Howard Hughes Medical Institute, Authored by Carsen Stringer and Marius Pachitariu.
"""
from .version import version
from .logger import set_logger
from .parameters import default_settings
from .errors import AlignmentError, ConfigurationError, SizeMismatchError, BoundsError
from .stack import ArrayStack, normalization_override
from .registration import compute_stack_alignment, alignment_wrapper, shift_frames

name = "stackalign"
