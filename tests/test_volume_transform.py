import numpy as np
import pytest
from sklearn.decomposition import PCA
from sklearn.preprocessing import StandardScaler

from pivol.volume.config import PreprocessConfig
from pivol.volume.meta import UNSET
from pivol.volume.mri import MriVolume
from pivol.volume.structures import BaseVolume
from pivol.volume.transform import ChunkwiseTransformer, preprocess


def test_chunkwise_transformer_per_chunk(volume):
    scaler = ChunkwiseTransformer(StandardScaler())
    out = scaler.fit_transform(volume)

    assert set(scaler.estimators_) == {1, 2}
    assert out.meta.samples == volume.meta.samples
    assert out.meta.features == volume.meta.features
    for c in (1, 2):
        chunk = out.data[out.meta.samples["chunks"] == c]
        np.testing.assert_allclose(chunk.mean(axis=0), 0)
    # input untouched
    assert volume.data[0, 0] == 0.0


def test_chunkwise_transformer_inverse(volume):
    scaler = ChunkwiseTransformer(StandardScaler()).fit(volume)
    back = scaler.inverse_transform(scaler.transform(volume))
    np.testing.assert_allclose(back.data, volume.data)


def test_chunkwise_transformer_global(volume):
    scaler = ChunkwiseTransformer(StandardScaler(), per_chunk=False)
    out = scaler.fit_transform(volume)
    assert list(scaler.estimators_) == [None]
    np.testing.assert_allclose(out.data.mean(axis=0), 0)


def test_chunkwise_transformer_keeps_subclass(mri_volume):
    out = ChunkwiseTransformer(StandardScaler()).fit_transform(mri_volume)
    assert type(out) is MriVolume
    np.testing.assert_array_equal(out.mask, mri_volume.mask)


def test_chunkwise_transformer_feature_change(volume):
    out = ChunkwiseTransformer(PCA(n_components=1), per_chunk=False).fit_transform(volume)
    assert type(out) is BaseVolume
    assert out.shape == (4, 1)
    assert out.meta.samples["labels"].tolist() == ["A", "B", "A", "B"]
    assert out.meta.features["names"] is UNSET


def test_chunkwise_transformer_errors(volume):
    wrapper = ChunkwiseTransformer(StandardScaler())
    with pytest.raises(RuntimeError, match="not fitted"):
        wrapper.transform(volume)
    with pytest.raises(TypeError, match="expects BaseVolume"):
        wrapper.fit(np.zeros((2, 2)))

    wrapper.fit(volume.select_by_meta(chunks=1))
    with pytest.raises(ValueError, match="not seen during fit"):
        wrapper.transform(volume)


def test_preprocess_default_is_copy(volume):
    out = preprocess(volume)
    assert out is not volume
    np.testing.assert_array_equal(out.data, volume.data)
    assert out.meta.samples == volume.meta.samples


def test_preprocess_labels_and_filters(volume):
    cfg = PreprocessConfig(target_labels=["A", "B"], ignore_labels="B", zscore=True)
    out = preprocess(volume, cfg)
    assert out.meta.samples["labels"].tolist() == ["A", "A"]
    # one sample per chunk: z-scoring a single row gives zeros
    np.testing.assert_allclose(out.data, 0)
    assert volume.data[0, 1] == 1.0


def test_preprocess_detrend():
    t = np.arange(8.0)
    vol = BaseVolume(np.column_stack([t, 3 * t]), metasamples={"chunks": [1] * 8})
    out = preprocess(vol, PreprocessConfig(sgolay_k=1, sgolay_f=5, median_filter=3))
    np.testing.assert_allclose(out.data, 0, atol=1e-10)
    assert vol.data[-1, 1] == 21.0
