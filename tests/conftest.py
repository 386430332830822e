import numpy as np
import pytest

from pivol.volume import BaseVolume, MriVolume


@pytest.fixture
def volume():
    """4 samples in 2 chunks by 3 features."""
    X = np.arange(12.0).reshape(4, 3)
    return BaseVolume(
        X,
        metasamples={"chunks": [1, 1, 2, 2], "labels": ["A", "B", "A", "B"]},
        metafeatures={"names": ["v1", "v2", "v3"], "roi": ["left", "left", "right"]},
    )


@pytest.fixture
def mask():
    m = np.zeros((2, 3, 2), dtype=bool)
    m[0, 0, 0] = m[0, 2, 1] = m[1, 1, 0] = True
    return m


@pytest.fixture
def mri_volume(mask):
    X = np.arange(12.0).reshape(4, 3)
    return MriVolume(
        X,
        mask=mask,
        header={"voxelsize": [2.0, 2.0, 2.0]},
        metasamples={"chunks": [1, 1, 2, 2], "labels": ["A", "B", "A", "B"]},
    )
