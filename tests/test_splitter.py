"""Tests for train/validation/test split planning."""

import pytest
from pydantic import ValidationError

from image_folder_pipeline.dataset_builder.config import SplitFractions
from image_folder_pipeline.dataset_builder.splitter import SplitPlanner
from image_folder_pipeline.lib import ConfigurationError, LabeledImage


def make_images(count, labels=("apple", "pear")):
    return [
        LabeledImage(path=f"/data/{labels[i % len(labels)]}/{i:04d}.jpg", label=labels[i % len(labels)])
        for i in range(count)
    ]


class TestSplitPlanner:
    """Tests for SplitPlanner.plan."""

    def test_partition_sizes(self):
        images = make_images(100)

        train, validation, test = SplitPlanner().plan(images, SplitFractions(), seed=42)

        assert len(test) == 20
        assert len(validation) == 10
        assert len(train) == 70

    def test_partitions_are_disjoint_and_exhaustive(self):
        images = make_images(57)

        train, validation, test = SplitPlanner().plan(
            images, {"test": 0.25, "validation": 0.15}, seed=7
        )

        paths = [i.path for i in train + validation + test]
        assert len(paths) == len(set(paths)) == 57
        assert set(paths) == {i.path for i in images}

    @pytest.mark.parametrize("count", [1, 2, 3, 7, 11])
    def test_sizes_sum_to_input_for_small_inputs(self, count):
        images = make_images(count)

        parts = SplitPlanner().plan(images, SplitFractions(), seed=1)

        assert sum(len(p) for p in parts) == count

    def test_same_seed_gives_identical_partitions(self):
        images = make_images(40)
        planner = SplitPlanner()

        first = planner.plan(images, SplitFractions(), seed=123)
        second = planner.plan(images, SplitFractions(), seed=123)

        assert first == second

    def test_different_seeds_give_different_partitions(self):
        images = make_images(60)
        planner = SplitPlanner()

        _, _, test_a = planner.plan(images, SplitFractions(), seed=1)
        _, _, test_b = planner.plan(images, SplitFractions(), seed=2)

        assert test_a != test_b

    def test_input_order_does_not_matter(self):
        images = make_images(50)
        planner = SplitPlanner()

        forward = planner.plan(images, SplitFractions(), seed=5)
        backward = planner.plan(list(reversed(images)), SplitFractions(), seed=5)

        assert forward == backward

    def test_partitions_are_sorted_by_path(self):
        parts = SplitPlanner().plan(make_images(30), SplitFractions(), seed=3)

        for part in parts:
            assert [i.path for i in part] == sorted(i.path for i in part)

    def test_zero_validation_fraction(self):
        train, validation, test = SplitPlanner().plan(
            make_images(20), {"test": 0.2, "validation": 0.0}, seed=42
        )

        assert validation == []
        assert len(test) == 4
        assert len(train) == 16

    def test_stratified_split_keeps_class_proportions(self):
        images = [LabeledImage(path=f"/d/a/{i}.png", label="a") for i in range(80)] + [
            LabeledImage(path=f"/d/b/{i}.png", label="b") for i in range(20)
        ]

        train, validation, test = SplitPlanner().plan(
            images, SplitFractions(), seed=42, stratify=True
        )

        assert sum(1 for i in test if i.label == "a") == 16
        assert sum(1 for i in test if i.label == "b") == 4
        assert sum(1 for i in validation if i.label == "b") == 2
        assert len(train) == 70

    def test_missing_seed_still_partitions(self):
        train, validation, test = SplitPlanner().plan(make_images(30), SplitFractions(), seed=None)

        assert len(train) + len(validation) + len(test) == 30

    def test_empty_input(self):
        assert SplitPlanner().plan([], SplitFractions(), seed=1) == ([], [], [])

    @pytest.mark.parametrize(
        "fractions",
        [
            {"test": 0.0, "validation": 0.1},
            {"test": 1.0, "validation": 0.0},
            {"test": 0.5, "validation": 0.5},
            {"test": 0.2, "validation": -0.1},
        ],
    )
    def test_invalid_fractions_raise(self, fractions):
        with pytest.raises(ConfigurationError):
            SplitPlanner().plan(make_images(10), fractions, seed=1)

    def test_unvalidated_fractions_are_rejected(self):
        fractions = SplitFractions.model_construct(test=0.7, validation=0.4)

        with pytest.raises(ConfigurationError):
            SplitPlanner().plan(make_images(10), fractions, seed=1)


class TestSplitFractions:
    """Tests for the SplitFractions model."""

    def test_defaults(self):
        fractions = SplitFractions()

        assert fractions.test == 0.2
        assert fractions.validation == 0.1
        assert fractions.train == pytest.approx(0.7)

    def test_sum_must_leave_training_data(self):
        with pytest.raises(ValidationError):
            SplitFractions(test=0.6, validation=0.4)
