import numpy as np
import pytest

from stackalign import ArrayStack, BoundsError, ConfigurationError, SizeMismatchError, normalization_override
from stackalign.stack import as_stack


@pytest.fixture()
def stack():
    data = np.arange(4 * 3 * 2 * 2, dtype=np.int16).reshape(4, 3, 2, 2)
    blank = np.full((3, 2), 2.)
    return ArrayStack(data, blank=blank, black_level=1., subtract_black=True)


def test_array_stack_shape(stack):
    assert stack.shape == (4, 3, 2, 2)
    assert (stack.n_frames, stack.Ly, stack.Lx, stack.n_channels) == (4, 3, 2, 2)
    assert len(stack) == 4


def test_single_channel_data_gets_a_channel_axis():
    stack = ArrayStack(np.zeros((5, 4, 3)))
    assert stack.shape == (5, 4, 3, 1)
    assert stack.read([0, 1], [0]).shape == (2, 4, 3, 1)


def test_read_selects_frames_and_channels(stack):
    slab = stack.read([2, 0], [1])
    assert slab.shape == (2, 3, 2, 1)
    assert slab.dtype == np.float64
    assert np.array_equal(slab[..., 0], stack.data[[2, 0], :, :, 1] - 1.)


def test_read_normalizations(stack):
    raw = stack.data[[1], :, :, :].astype(np.float64) - 1.
    stack.normalization = "subtract"
    assert np.array_equal(stack.read([1], [0, 1]), raw - 2.)
    stack.normalization = "ratio"
    assert np.array_equal(stack.read([1], [0, 1]), raw / 2.)


def test_ratio_with_zero_blank_is_missing():
    stack = ArrayStack(np.ones((2, 2, 2)), blank=np.array([[0., 1.], [1., 1.]]), normalization="ratio")
    slab = stack.read([0], [0])
    assert np.isnan(slab[0, 0, 0, 0])
    assert slab[0, 1, 1, 0] == 1.


def test_read_out_of_bounds(stack):
    with pytest.raises(BoundsError):
        stack.read([4], [0])
    with pytest.raises(BoundsError):
        stack.read([0], [2])


def test_normalization_needs_valid_mode_and_blank(stack):
    with pytest.raises(ConfigurationError):
        stack.normalization = "vector"
    with pytest.raises(ConfigurationError):
        ArrayStack(np.zeros((2, 2, 2)), normalization="ratio")


def test_blank_must_match_frames():
    with pytest.raises(SizeMismatchError):
        ArrayStack(np.zeros((2, 4, 4)), blank=np.ones((4, 3)))


def test_bad_stack_shape():
    with pytest.raises(SizeMismatchError):
        ArrayStack(np.zeros((4, 4)))
    with pytest.raises(SizeMismatchError):
        ArrayStack(np.zeros((0, 4, 4)))


def test_normalization_override_restores_state(stack):
    stack.normalization = "ratio"
    with normalization_override(stack):
        assert stack.normalization == "none"
        assert not stack.subtract_black
    assert stack.normalization == "ratio"
    assert stack.subtract_black


def test_normalization_override_restores_state_on_error(stack):
    stack.normalization = "subtract"
    with pytest.raises(RuntimeError):
        with normalization_override(stack):
            raise RuntimeError("failure during alignment")
    assert stack.normalization == "subtract"
    assert stack.subtract_black


def test_as_stack_wraps_arrays_only(stack):
    assert as_stack(stack) is stack
    wrapped = as_stack(np.zeros((3, 4, 4)))
    assert isinstance(wrapped, ArrayStack)
    assert wrapped.shape == (3, 4, 4, 1)
