"""
Volume Structures Demo
======================

Demonstrates BaseVolume, MriVolume and chunk-wise preprocessing.
"""
import numpy as np

from pivol import BaseVolume, MriVolume, preprocess
from pivol.volume.config import PreprocessConfig


def section(title):
    print(f"\n{'='*20} {title} {'='*20}")


# 1. Plain volume: 2 runs x 4 trials, 5 features
section("1. BaseVolume")
n_runs = 2
n_trials = 4
labels = np.tile(["face", "house", "face", "rest"], n_runs)
chunks = np.repeat(np.arange(1, n_runs + 1), n_trials)

vol = BaseVolume(
    np.random.randn(n_runs * n_trials, 5),
    metasamples={"labels": labels, "chunks": chunks},
    metafeatures={"names": [f"f{i}" for i in range(5)]},
)
print(f"Original: {vol}")
print(f"Unique labels: {vol.desc.samples['labels'].unique_values}")

# Select / remove
faces = vol.select_by_meta(labels="face")
print(f"Faces only: {faces.shape} chunks={faces.meta.samples['chunks']}")
no_rest = vol.remove_by_meta(labels="rest")
print(f"Without rest: {no_rest.shape}")

# Stack runs
both = vol.concat_samples(vol)
print(f"Stacked: {both.shape} order={both.meta.samples['order']}")


# 2. MRI volume with a 3D mask
section("2. MriVolume")
mask = np.zeros((4, 4, 2), dtype=bool)
mask[1:3, 1:3, :] = True
mri = MriVolume(
    np.random.randn(n_runs * n_trials, int(mask.sum())),
    mask=mask,
    header={"voxelsize": [3.0, 3.0, 3.0]},
    metasamples={"labels": labels, "chunks": chunks},
)
print(f"Original: {mri}")
print(f"First voxel coordinates: {mri.meta.features['xyz'][:3].tolist()}")

roi = mri.get(":", slice(0, 4))
print(f"ROI subset: {roi} ({int(roi.mask.sum())} voxels in mask)")
print(f"Back to 3D: {mri.to_volume(0).shape}")


# 3. Preprocessing
section("3. Preprocessing")
cfg = PreprocessConfig(ignore_labels="rest", sgolay_k=1, sgolay_f=3, zscore=True)
clean = preprocess(mri, cfg)
print(f"Preprocessed: {clean}")
print(f"Per-run means: {[clean.data[m].mean().round(6) for _, m in clean.iter_chunks()]}")
