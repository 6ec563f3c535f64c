"""
Copyright © 2023 Howard Hughes Medical Institute, Authored by Carsen Stringer and Marius Pachitariu.
"""
import numpy as np

from .version import version


def default_settings():
    """ default options to compute a stack alignment """
    return {
        "stackalign_version": version,  # version of stackalign used to make the settings
        "torch_device": "cpu",  # torch device using GPU ("cuda") or CPU ("cpu")

        "alignment": {
            "channels":
                0,  # channel used for alignment (0-based); a list of channels is summed, or (func, channels) to combine them with func
            "progressive":
                False,  # register each frame to the previous one instead of to a fixed reference
            "upsampling": 1,  # shifts are computed to 1/upsampling pixels
            "reference":
                None,  # reference image (Ly x Lx), or frame index used as reference; None uses the first window
            "window_length":
                1,  # number of frames averaged in a moving window to compute each shift
            "spatial_freq_cutoff":
                (0., np.inf),  # band of spatial frequencies (cycles / pixel) used for alignment
            "trial_ranges":
                None,  # list of (first_frame, last_frame) trial blocks, inclusive; None is a single block
            "batch_size": 100,  # number of frames read from the stack at a time
        },
    }
