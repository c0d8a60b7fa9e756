"""Tests for deserializers and the composite minibatch source."""

from __future__ import annotations

from pathlib import Path

import pytest
import torch
from PIL import Image
from pydantic import ValidationError

from multichannel_regression.data import (
    TARGETS_STREAM,
    CompositeMinibatchSource,
    CTFDeserializer,
    CTFStreamConfig,
    ImageDeserializer,
    create_train_minibatch_source,
    features_stream_name,
    labels_stream_name,
)
from multichannel_regression.io import MapFileError
from multichannel_regression.synthetic import SyntheticDataset


def _source(
    dataset: SyntheticDataset,
    max_sweeps: int | None = 1,
    randomize: bool = False,
    seed: int = 0,
) -> CompositeMinibatchSource:
    return create_train_minibatch_source(
        dataset.channel_map_files,
        dataset.targets,
        output_dim=3,
        max_sweeps=max_sweeps,
        image_shape=(4, 4, 1),
        randomize=randomize,
        seed=seed,
    )


# ---------------------------------------------------------------------------
# ImageDeserializer
# ---------------------------------------------------------------------------


class TestImageDeserializer:
    def test_streams_and_length(self, synthetic_dataset: SyntheticDataset) -> None:
        d = ImageDeserializer(
            synthetic_dataset.channel_map_files["Channel1"],
            features_stream="Channel1features",
            labels_stream="Channel1labels",
            image_shape=(4, 4, 1),
        )
        assert len(d) == 5
        assert [s.name for s in d.streams] == ["Channel1features", "Channel1labels"]
        assert d.streams[0].shape == (4, 4, 1)
        assert d.streams[1].shape == (1,)

    def test_read_returns_raw_pixels(self, two_example_dataset: SyntheticDataset) -> None:
        d = ImageDeserializer(
            two_example_dataset.channel_map_files["Channel1"],
            features_stream="f",
            labels_stream="l",
            image_shape=(2, 2, 1),
        )
        out = d.read([1, 0])
        assert out["f"].shape == (2, 2, 2, 1)
        assert out["f"].dtype == torch.float32
        assert torch.all(out["f"][0] == 255.0)
        assert torch.all(out["f"][1] == 0.0)
        assert torch.equal(out["l"], torch.ones(2, 1))

    def test_read_no_indices(self, two_example_dataset: SyntheticDataset) -> None:
        d = ImageDeserializer(
            two_example_dataset.channel_map_files["Channel1"],
            features_stream="f",
            labels_stream="l",
            image_shape=(2, 2, 1),
        )
        out = d.read([])
        assert out["f"].shape == (0, 2, 2, 1)
        assert out["l"].shape == (0, 1)

    def test_size_mismatch_raises_on_read(
        self, two_example_dataset: SyntheticDataset
    ) -> None:
        d = ImageDeserializer(
            two_example_dataset.channel_map_files["Channel1"],
            features_stream="f",
            labels_stream="l",
            image_shape=(28, 28, 1),
        )
        with pytest.raises(ValueError, match="expected 28x28"):
            d.read([0])

    def test_missing_image_raises_on_read(self, tmp_path: Path) -> None:
        Image.new("L", (2, 2)).save(tmp_path / "a.png")
        map_file = tmp_path / "train.map"
        map_file.write_text("a.png\t0\nmissing.png\t0\n")
        d = ImageDeserializer(map_file, "f", "l", image_shape=(2, 2, 1))
        assert len(d) == 2
        assert d.read([0])["f"].shape == (1, 2, 2, 1)
        with pytest.raises(FileNotFoundError):
            d.read([1])

    def test_label_out_of_range(self, tmp_path: Path) -> None:
        Image.new("L", (2, 2)).save(tmp_path / "a.png")
        map_file = tmp_path / "train.map"
        map_file.write_text("a.png\t1\n")
        with pytest.raises(MapFileError, match="outside"):
            ImageDeserializer(
                map_file, "f", "l", num_labels=1, image_shape=(2, 2, 1)
            )

    def test_rgb_requires_depth_three(self, two_example_dataset: SyntheticDataset) -> None:
        with pytest.raises(ValueError, match="RGB"):
            ImageDeserializer(
                two_example_dataset.channel_map_files["Channel1"],
                "f",
                "l",
                image_shape=(2, 2, 1),
                grayscale=False,
            )

    def test_rgb_decoding(self, tmp_path: Path) -> None:
        Image.new("RGB", (3, 2), color=(10, 20, 30)).save(tmp_path / "a.png")
        map_file = tmp_path / "train.map"
        map_file.write_text("a.png\t0\n")
        d = ImageDeserializer(
            map_file, "f", "l", image_shape=(2, 3, 3), grayscale=False
        )
        image = d.read([0])["f"][0]
        assert image.shape == (2, 3, 3)
        assert image[0, 0].tolist() == [10.0, 20.0, 30.0]


# ---------------------------------------------------------------------------
# CTFDeserializer
# ---------------------------------------------------------------------------


class TestCTFDeserializer:
    def test_read_by_index(self, two_example_dataset: SyntheticDataset) -> None:
        d = CTFDeserializer(
            two_example_dataset.targets, [CTFStreamConfig(name="targets", dim=1)]
        )
        assert len(d) == 2
        assert d.streams[0].shape == (1,)
        assert d.read([1, 0])["targets"].tolist() == [[1.0], [0.0]]

    def test_sparse_stream_config_rejected(self) -> None:
        with pytest.raises(ValidationError, match="sparse"):
            CTFStreamConfig(name="targets", dim=3, is_sparse=True)

    def test_requires_stream(self, two_example_dataset: SyntheticDataset) -> None:
        with pytest.raises(ValueError, match="at least one stream"):
            CTFDeserializer(two_example_dataset.targets, [])


# ---------------------------------------------------------------------------
# CompositeMinibatchSource
# ---------------------------------------------------------------------------


class TestCompositeMinibatchSource:
    def test_stream_names(self, synthetic_dataset: SyntheticDataset) -> None:
        source = _source(synthetic_dataset)
        names = [s.name for s in source.stream_infos()]
        assert names == [
            features_stream_name("Channel1"),
            labels_stream_name("Channel1"),
            features_stream_name("Channel2"),
            labels_stream_name("Channel2"),
            TARGETS_STREAM,
        ]
        assert features_stream_name("Channel1") == "Channel1features"
        assert source.stream_info(TARGETS_STREAM).shape == (3,)

    def test_unknown_stream(self, synthetic_dataset: SyntheticDataset) -> None:
        with pytest.raises(KeyError, match="Channel9features"):
            _source(synthetic_dataset).stream_info("Channel9features")

    def test_minibatches_do_not_cross_sweep(
        self, synthetic_dataset: SyntheticDataset
    ) -> None:
        source = _source(synthetic_dataset, max_sweeps=1)
        sizes, flags = [], []
        while True:
            mb = source.get_next_minibatch(2)
            if mb.empty():
                break
            sizes.append(mb.num_samples)
            flags.append(mb[TARGETS_STREAM].sweep_end)
            # every stream carries the same flag and sample count
            assert all(s.sweep_end == flags[-1] for s in mb.values())
            assert all(s.data.shape[0] == sizes[-1] for s in mb.values())
        assert sizes == [2, 2, 1]
        assert flags == [False, False, True]
        assert source.sweeps_completed == 1
        assert source.samples_seen == 5

    def test_exhausted_source_keeps_returning_empty(
        self, synthetic_dataset: SyntheticDataset
    ) -> None:
        source = _source(synthetic_dataset, max_sweeps=2)
        batches = 0
        while not source.get_next_minibatch(5).empty():
            batches += 1
        assert batches == 2
        assert source.is_exhausted
        assert source.get_next_minibatch(5).empty()

    def test_sequential_order_matches_file(
        self, synthetic_dataset: SyntheticDataset
    ) -> None:
        source = _source(synthetic_dataset)
        expected = CTFDeserializer(
            synthetic_dataset.targets, [CTFStreamConfig(name="targets", dim=3)]
        ).read(range(5))["targets"]
        mb = source.get_next_minibatch(32)
        assert torch.equal(mb[TARGETS_STREAM].data, expected)
        assert mb[TARGETS_STREAM].sweep_end

    def test_randomized_sweep_visits_every_sample(
        self, synthetic_dataset: SyntheticDataset
    ) -> None:
        source = _source(synthetic_dataset, max_sweeps=3, randomize=True)
        expected = torch.sort(
            source.get_next_minibatch(5)[TARGETS_STREAM].data[:, 0]
        ).values
        for _ in range(2):
            seen = torch.cat(
                [source.get_next_minibatch(2)[TARGETS_STREAM].data for _ in range(3)]
            )
            assert torch.equal(torch.sort(seen[:, 0]).values, expected)
        assert source.get_next_minibatch(2).empty()

    def test_same_seed_same_order(self, synthetic_dataset: SyntheticDataset) -> None:
        a = _source(synthetic_dataset, randomize=True, seed=3).get_next_minibatch(5)
        b = _source(synthetic_dataset, randomize=True, seed=3).get_next_minibatch(5)
        assert torch.equal(a[TARGETS_STREAM].data, b[TARGETS_STREAM].data)

    def test_device_placement(self, synthetic_dataset: SyntheticDataset) -> None:
        mb = _source(synthetic_dataset).get_next_minibatch(2, device="cpu")
        assert mb["Channel1features"].data.device.type == "cpu"

    def test_invalid_minibatch_size(self, synthetic_dataset: SyntheticDataset) -> None:
        with pytest.raises(ValueError, match="positive"):
            _source(synthetic_dataset).get_next_minibatch(0)

    def test_invalid_max_sweeps(self, synthetic_dataset: SyntheticDataset) -> None:
        with pytest.raises(ValueError, match="max_sweeps"):
            _source(synthetic_dataset, max_sweeps=0)

    def test_sample_count_mismatch(
        self, synthetic_dataset: SyntheticDataset, tmp_path: Path
    ) -> None:
        short_ctf = tmp_path / "short.ctf"
        short_ctf.write_text("0 |targets 1 2 3\n")
        with pytest.raises(ValueError, match="disagree on sample count"):
            create_train_minibatch_source(
                synthetic_dataset.channel_map_files,
                short_ctf,
                output_dim=3,
                image_shape=(4, 4, 1),
            )

    def test_empty_data_source(self, tmp_path: Path) -> None:
        map_file = tmp_path / "empty.map"
        map_file.write_text("")
        ctf = tmp_path / "empty.ctf"
        ctf.write_text("")
        source = create_train_minibatch_source(
            {"Channel1": map_file}, ctf, output_dim=3, image_shape=(4, 4, 1)
        )
        assert source.num_samples == 0
        assert source.get_next_minibatch(4).empty()
