"""Tests for image discovery below a class-per-subdirectory root."""

import logging

import pytest

from image_folder_pipeline.dataset_builder.discovery import (
    ImageDiscovery,
    find_image_files,
    list_class_directories,
)
from image_folder_pipeline.lib import DirectoryNotFound



class TestImageDiscovery:
    """Tests for ImageDiscovery.discover."""

    def test_labels_every_image_with_its_class_directory(self, dataset_factory):
        root = dataset_factory({"cat": 3, "dog": 4})

        images = ImageDiscovery().discover(root)

        assert len(images) == 7
        assert sorted({i.label for i in images}) == ["cat", "dog"]
        assert sum(1 for i in images if i.label == "cat") == 3

    def test_nested_images_take_the_top_level_label(self, dataset_factory):
        root = dataset_factory({"cat": 4, "dog": 2}, nested=True)

        images = ImageDiscovery().discover(root)

        assert len(images) == 6
        for image in images:
            assert image.path.startswith(str(root.resolve() / image.label))

    def test_paths_are_absolute_unique_and_sorted(self, tmp_path, make_image):
        root = tmp_path / "data"
        make_image(root / "b" / "2.png")
        make_image(root / "a" / "1.png")
        make_image(root / "a" / "0.png")

        images = ImageDiscovery().discover(root)
        paths = [i.path for i in images]

        assert paths == sorted(paths)
        assert len(set(paths)) == len(paths)
        assert all(p.startswith("/") for p in paths)

    def test_extension_match_is_case_insensitive(self, tmp_path, make_image):
        root = tmp_path / "data"
        make_image(root / "cat" / "upper.PNG")
        make_image(root / "cat" / "lower.png")
        (root / "cat" / "notes.txt").write_text("not an image")

        images = ImageDiscovery().discover(root)

        assert sorted(p.path.rsplit("/", 1)[-1] for p in images) == ["lower.png", "upper.PNG"]

    def test_restricted_extensions(self, tmp_path, make_image):
        root = tmp_path / "data"
        make_image(root / "cat" / "a.png")
        make_image(root / "cat" / "b.bmp")

        images = ImageDiscovery(extensions=[".bmp"]).discover(root)

        assert [p.path.rsplit("/", 1)[-1] for p in images] == ["b.bmp"]

    def test_empty_class_directory_is_skipped_with_warning(self, tmp_path, caplog, make_image):
        root = tmp_path / "data"
        make_image(root / "cat" / "a.png")
        (root / "empty").mkdir()

        with caplog.at_level(logging.WARNING):
            images = ImageDiscovery().discover(root)

        assert {i.label for i in images} == {"cat"}
        assert "No images found for 'empty'" in caplog.text

    def test_files_directly_under_root_are_ignored(self, tmp_path, make_image):
        root = tmp_path / "data"
        make_image(root / "stray.png")
        make_image(root / "cat" / "a.png")

        images = ImageDiscovery().discover(root)

        assert len(images) == 1
        assert images[0].label == "cat"

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(DirectoryNotFound) as exc_info:
            ImageDiscovery().discover(tmp_path / "missing")

        assert isinstance(exc_info.value, FileNotFoundError)
        assert exc_info.value.path.endswith("missing")


class TestHelpers:
    """Tests for the module level discovery helpers."""

    def test_find_image_files_recurses(self, tmp_path, make_image):
        make_image(tmp_path / "a" / "b" / "c" / "deep.jpg")
        make_image(tmp_path / "top.jpeg")

        files = find_image_files(tmp_path)

        assert [f.name for f in files] == ["deep.jpg", "top.jpeg"]

    def test_list_class_directories_sorted_by_name(self, tmp_path):
        for name in ["zebra", "ant", "moose"]:
            (tmp_path / name).mkdir()
        (tmp_path / "file.txt").write_text("x")

        assert [p.name for p in list_class_directories(tmp_path)] == ["ant", "moose", "zebra"]
