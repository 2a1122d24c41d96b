"""Tests for rasterizing arrays, image files and video frames into RGBA."""
import numpy as np
import pytest

from blurmeter.quality.errors import InvalidDimensions
from blurmeter.sources.pixel_source import (
    RGBAFrame,
    blur_meter,
    frame_from_array,
    frame_from_image,
    frame_from_video,
    iter_sources,
    load_frame,
)
from conftest import checkerboard


def _rgba(frame: RGBAFrame) -> np.ndarray:
    return np.frombuffer(frame.pixels, dtype=np.uint8).reshape(frame.height, frame.width, 4)


class TestFrameFromArray:
    def test_gray_is_expanded_to_opaque_rgba(self):
        frame = frame_from_array(np.full((4, 6), 77, dtype=np.uint8))
        assert (frame.width, frame.height) == (6, 4)
        assert len(frame.pixels) == 6 * 4 * 4
        rgba = _rgba(frame)
        assert np.all(rgba[..., :3] == 77)
        assert np.all(rgba[..., 3] == 255)

    def test_rgb_gets_alpha(self):
        img = np.zeros((3, 3, 3), dtype=np.uint8)
        img[..., 0] = 10
        img[..., 2] = 30
        rgba = _rgba(frame_from_array(img))
        assert tuple(rgba[1, 1]) == (10, 0, 30, 255)

    def test_rgba_passes_through(self):
        img = np.arange(5 * 4 * 4, dtype=np.uint8).reshape(5, 4, 4)
        assert frame_from_array(img).pixels == img.tobytes()

    def test_float01_is_scaled(self):
        rgba = _rgba(frame_from_array(np.ones((3, 3, 3), dtype=np.float32)))
        assert np.all(rgba[..., :3] == 255)

    def test_float255_is_clipped(self):
        img = np.full((3, 3), 300.0)
        assert np.all(_rgba(frame_from_array(img))[..., :3] == 255)

    def test_bad_channel_count(self):
        with pytest.raises(ValueError):
            frame_from_array(np.zeros((3, 3, 2), dtype=np.uint8))

    def test_empty_array(self):
        with pytest.raises(InvalidDimensions):
            frame_from_array(np.zeros((0, 5, 3), dtype=np.uint8))


class TestImageFiles:
    def test_png_checkerboard_is_sharp(self, tmp_path):
        from PIL import Image

        path = tmp_path / "checker.png"
        Image.fromarray(checkerboard(10, 10)).save(path)
        frame = frame_from_image(path)
        assert (frame.width, frame.height) == (10, 10)
        assert blur_meter(path).score == 10

    def test_uniform_jpeg_is_blurry(self, tmp_path):
        from PIL import Image

        path = tmp_path / "gray.jpg"
        Image.new("RGB", (32, 24), color=(128, 128, 128)).save(path)
        result = blur_meter(str(path))
        assert result.score == 1

    def test_pil_image_object(self):
        from PIL import Image

        im = Image.fromarray(checkerboard(8, 8)).convert("RGB")
        assert blur_meter(im).score == 10

    def test_options_are_forwarded(self, tmp_path):
        from PIL import Image

        path = tmp_path / "checker.png"
        Image.fromarray(checkerboard(10, 10)).save(path)
        assert blur_meter(path, {"threshold_min": 0, "threshold_max": 1e12}).score == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            blur_meter(tmp_path / "missing.png")

    def test_oversized_image_is_value_error(self, tmp_path, monkeypatch):
        from PIL import Image

        path = tmp_path / "big.png"
        Image.fromarray(checkerboard(40, 40)).save(path)
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
        with pytest.raises(ValueError, match="Refusing to decode"):
            frame_from_image(path)


class TestVideoFrames:
    def test_reads_requested_frame(self, tmp_path):
        cv2 = pytest.importorskip("cv2")

        path = tmp_path / "clip.avi"
        writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 5.0, (32, 24))
        if not writer.isOpened():
            pytest.skip("MJPG writer not available in this OpenCV build")
        for _ in range(3):
            writer.write(np.full((24, 32, 3), 128, dtype=np.uint8))
        writer.release()

        frame = frame_from_video(path, frame_index=1)
        assert (frame.width, frame.height) == (32, 24)
        assert blur_meter(path, frame_index=1).score == 1

    def test_opencv_failure_is_value_error(self, tmp_path, monkeypatch):
        cv2 = pytest.importorskip("cv2")

        path = tmp_path / "clip.avi"
        writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 5.0, (32, 24))
        if not writer.isOpened():
            pytest.skip("MJPG writer not available in this OpenCV build")
        writer.write(np.full((24, 32, 3), 128, dtype=np.uint8))
        writer.release()

        def _broken_cvt(*args, **kwargs):
            raise cv2.error("unsupported conversion")

        monkeypatch.setattr(cv2, "cvtColor", _broken_cvt)
        with pytest.raises(ValueError, match="OpenCV failed"):
            frame_from_video(path)

    def test_missing_video(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            frame_from_video(tmp_path / "none.mp4")

    def test_negative_frame_index(self, tmp_path):
        with pytest.raises(ValueError):
            frame_from_video(tmp_path / "none.mp4", frame_index=-1)


class TestLoadFrame:
    def test_frame_passthrough(self):
        frame = RGBAFrame(pixels=bytes(3 * 3 * 4), width=3, height=3)
        assert load_frame(frame) is frame

    def test_array_source(self):
        assert blur_meter(checkerboard(10, 10)).score == 10

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            load_frame(12345)


class TestIterSources:
    def test_directory_expansion(self, tmp_path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "b.png").write_bytes(b"")
        (tmp_path / "notes.txt").write_text("x")
        (tmp_path / "sub" / "a.JPG").write_bytes(b"")
        found = iter_sources([tmp_path])
        assert [p.name for p in found] == ["b.png", "a.JPG"]

    def test_files_kept_as_given(self, tmp_path):
        p = tmp_path / "whatever.bin"
        assert iter_sources([p]) == [p]
