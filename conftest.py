import numpy as np
import pytest

from tests.utils import smooth_image


@pytest.fixture()
def ref_img():
    """Smooth random 64 x 64 image with mostly low spatial frequencies, like a mean image."""
    return smooth_image(np.random.default_rng(42), (64, 64))


@pytest.fixture()
def ref_img_2():
    return smooth_image(np.random.default_rng(7), (64, 64))
