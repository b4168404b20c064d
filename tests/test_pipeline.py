"""
Tests for the extension pipeline.

Tests cover:
- End-to-end correction and averaging of synthetic raw files
- Verbatim copy of non-image extensions
- Per-sample output ordering
- Overwrite, abort and saturation behaviour
"""

import warnings

import numpy as np
import pytest
from astropy.io import fits

import skipproc.pipeline as pipeline
from skipproc.config import OverscanLayout, PlaneKind, ProcessConfig
from skipproc.errors import ContainerIOError, InputNotFound, MalformedExtension, SaturationWarning
from skipproc.pipeline import correct_and_average, process_file


def _hdu_blocks(path):
    """Raw header+data bytes of every HDU in a FITS file."""
    with fits.open(path) as hdul:
        spans = [hdul.fileinfo(i) for i in range(len(hdul))]
    raw = path.read_bytes()
    return [raw[s["hdrLoc"]:s["datLoc"] + s["datSpan"]] for s in spans]


class TestCorrectAndAverage:
    """Tests for in-memory correction of one raw extension."""

    def test_end_to_end_values(self, layout, synthetic_raw):
        """Active pixels end at 1000-100 on the left and 1000-200 on the right."""
        raw = synthetic_raw(n_samples=2, height=10)
        averaged = correct_and_average(raw.astype(np.float64), layout)

        mean = averaged.mean
        assert averaged.n_samples == 2
        assert mean.shape == (10, 1000)
        assert np.allclose(mean[:, :455], 900.0)
        assert np.allclose(mean[:, 499:500], 900.0)
        assert np.allclose(mean[:, 544:], 800.0)
        assert np.allclose(mean[:, 455:499], 0.0)
        assert np.allclose(mean[:, 500:544], 0.0)

    def test_baselines_recorded(self, layout, synthetic_raw):
        raw = synthetic_raw(n_samples=3, height=4)
        averaged = correct_and_average(raw, layout)
        assert averaged.left_baselines.shape == (3, 4)
        assert np.allclose(averaged.left_baselines, 100.0)
        assert np.allclose(averaged.right_baselines, 200.0)

    def test_samples_averaged(self, layout, synthetic_raw):
        """Different sample levels average out."""
        raw = synthetic_raw(n_samples=4, height=3, active_step=10.0)
        averaged = correct_and_average(raw, layout)
        # Samples at 1000, 1010, 1020, 1030 minus 100
        assert np.allclose(averaged.mean[:, :455], 915.0)

    def test_per_sample_baselines(self, layout, synthetic_sample, interleave):
        """Each sample is corrected with its own overscan."""
        samples = [
            synthetic_sample(height=2, active=1000.0, left_os=100.0, right_os=200.0),
            synthetic_sample(height=2, active=1000.0, left_os=300.0, right_os=0.0),
        ]
        averaged = correct_and_average(interleave(samples), layout)
        assert np.allclose(averaged.mean[:, :455], (900.0 + 700.0) / 2)
        assert np.allclose(averaged.mean[:, 544:], (800.0 + 1000.0) / 2)

    def test_callback_order(self, layout, synthetic_raw):
        seen = []
        raw = synthetic_raw(n_samples=3, height=2, active_step=1.0)
        correct_and_average(raw, layout, on_sample=lambda s, img: seen.append((s, img[0, 0])))
        assert [s for s, _ in seen] == [0, 1, 2]
        assert [v for _, v in seen] == pytest.approx([900.0, 901.0, 902.0])

    def test_corrects_each_sample_once(self, layout, synthetic_raw, monkeypatch):
        """The correction runs exactly once per sample."""
        calls = []
        original = pipeline.correct_sample

        def counting(image, layout, estimator="trimmed"):
            calls.append(image.shape)
            return original(image, layout, estimator)

        monkeypatch.setattr(pipeline, "correct_sample", counting)
        correct_and_average(synthetic_raw(n_samples=5, height=2), layout)
        assert len(calls) == 5

    def test_malformed_width(self, layout):
        with pytest.raises(MalformedExtension):
            correct_and_average(np.zeros((4, 1500)), layout)

    def test_custom_layout(self):
        """Geometry is an input, not a constant."""
        layout = OverscanLayout(image_width=100, active_width=60, guard_columns=2, trim=2)
        # overscan_width = (50 - 30) - 2 - 1 = 17; left (32, 49), right (50, 67)
        sample = np.full((2, 100), 50.0)
        sample[:, 32:49] = 10.0
        sample[:, 50:67] = 20.0
        raw = np.repeat(sample, 2, axis=1)
        averaged = correct_and_average(raw, layout)
        assert np.allclose(averaged.mean[:, :32], 40.0)
        assert np.allclose(averaged.mean[:, 67:], 30.0)


class TestProcessFile:
    """Tests for whole-file processing."""

    def test_mean_output(self, tmp_path, raw_fits_file):
        raw_path = raw_fits_file()
        out_path = tmp_path / "proc.fits"

        result = process_file(raw_path, out_path, quiet=True)

        assert out_path.exists()
        assert result.samples_path is None
        assert [rec.kind for rec in result.extensions] == [PlaneKind.PASSTHROUGH, PlaneKind.IMAGE]
        with fits.open(out_path) as hdul:
            assert len(hdul) == 2
            mean = hdul[1].data
            assert mean.shape == (10, 1000)
            assert np.allclose(mean[:, :455], 900.0)
            assert np.allclose(mean[:, 544:], 800.0)
            assert hdul[1].header["BITPIX"] == -32
            assert hdul[1].header["NSAMP"] == 2
            assert hdul[1].header["EXTNAME"] == "CCD1"

    def test_same_plane_count_as_input(self, tmp_path, raw_fits_file):
        raw_path = raw_fits_file(n_samples_per_ext=(2, 3, 1), with_table=True)
        out_path = tmp_path / "proc.fits"
        process_file(raw_path, out_path, quiet=True)

        with fits.open(raw_path) as raw, fits.open(out_path) as out:
            assert len(out) == len(raw) == 5
            assert [h.name for h in out] == [h.name for h in raw]
            for i in (1, 2, 3):
                assert out[i].data.shape == (10, 1000)

    @pytest.mark.parametrize("checksum", [False, True])
    def test_non_image_byte_identical(self, tmp_path, raw_fits_file, checksum):
        """Header-only primary and table are stored exactly as in the input."""
        raw_path = raw_fits_file(with_table=True)
        if checksum:
            summed_path = tmp_path / "summed.fits"
            with fits.open(raw_path) as hdul:
                hdul.writeto(summed_path, checksum=True)
            raw_path = summed_path
        out_path = tmp_path / "proc.fits"
        process_file(raw_path, out_path, quiet=True)

        raw_blocks = _hdu_blocks(raw_path)
        out_blocks = _hdu_blocks(out_path)
        assert out_blocks[0] == raw_blocks[0]
        assert out_blocks[2] == raw_blocks[2]

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            with fits.open(out_path, checksum=True) as hdul:
                assert len(hdul) == 3
                if checksum:
                    assert "CHECKSUM" in hdul[0].header
                    assert "CHECKSUM" in hdul[2].header

    def test_non_image_passthrough(self, tmp_path, raw_fits_file):
        """Header-only primary and table are copied unchanged."""
        raw_path = raw_fits_file(with_table=True)
        out_path = tmp_path / "proc.fits"
        process_file(raw_path, out_path, quiet=True)

        with fits.open(raw_path) as raw, fits.open(out_path) as out:
            assert out[0].data is None
            assert out[0].header["OBSERVER"] == "synthetic"

            table_in, table_out = raw[2], out[2]
            assert isinstance(table_out, fits.BinTableHDU)
            assert table_out.name == "TELEMETRY"
            assert table_out.data.tobytes() == table_in.data.tobytes()
            for key in ("TTYPE1", "TFORM1", "TTYPE2", "TFORM2", "NAXIS1", "NAXIS2"):
                assert table_out.header[key] == table_in.header[key]

    def test_samples_output_order(self, tmp_path, raw_fits_file):
        """Per-sample file holds (extension, sample) planes then each mean."""
        raw_path = raw_fits_file(n_samples_per_ext=(2, 3), active_step=10.0, with_table=True)
        out_path = tmp_path / "proc.fits"
        config = ProcessConfig(save_samples=True)

        result = process_file(raw_path, out_path, config=config, quiet=True)

        samples_path = tmp_path / "samples_proc.fits"
        assert result.samples_path == str(samples_path)
        with fits.open(samples_path) as hdul:
            # primary + (2 + mean) + (3 + mean) + table
            assert len(hdul) == 1 + 3 + 4 + 1
            assert hdul[0].data is None

            levels = [float(hdul[i].data[0, 0]) for i in range(1, 8)]
            assert levels == pytest.approx([900.0, 910.0, 905.0, 900.0, 910.0, 920.0, 910.0])

            assert [hdul[i].header.get("SAMPLE") for i in range(1, 8)] == [0, 1, None, 0, 1, 2, None]
            assert isinstance(hdul[8], fits.BinTableHDU)

        with fits.open(out_path) as hdul:
            assert len(hdul) == 4
            assert float(hdul[1].data[0, 0]) == pytest.approx(905.0)
            assert float(hdul[2].data[0, 0]) == pytest.approx(910.0)

    def test_samples_prefix_keeps_directory(self, tmp_path, raw_fits_file):
        raw_path = raw_fits_file()
        out_dir = tmp_path / "out"
        out_dir.mkdir()
        process_file(raw_path, out_dir / "img.fits", config=ProcessConfig(save_samples=True), quiet=True)
        assert (out_dir / "samples_img.fits").exists()

    def test_overwrites_existing_output(self, tmp_path, raw_fits_file):
        raw_path = raw_fits_file()
        out_path = tmp_path / "proc.fits"
        out_path.write_text("stale")

        process_file(raw_path, out_path, quiet=True)

        with fits.open(out_path) as hdul:
            assert hdul[1].data.shape == (10, 1000)

    def test_existing_output_without_overwrite(self, tmp_path, raw_fits_file):
        raw_path = raw_fits_file()
        out_path = tmp_path / "proc.fits"
        out_path.write_text("stale")

        with pytest.raises(ContainerIOError) as excinfo:
            process_file(raw_path, out_path, config=ProcessConfig(overwrite=False), quiet=True)
        assert excinfo.value.status == 105

    def test_missing_input(self, tmp_path):
        with pytest.raises(InputNotFound):
            process_file(tmp_path / "nope.fits", tmp_path / "out.fits", quiet=True)
        assert not (tmp_path / "out.fits").exists()

    def test_malformed_aborts_leaving_partial_output(self, tmp_path):
        """Abort on the first bad extension; planes already written remain."""
        raw_path = tmp_path / "bad.fits"
        fits.HDUList([fits.PrimaryHDU(), fits.ImageHDU(np.zeros((4, 1500), dtype=np.float32))]).writeto(raw_path)
        out_path = tmp_path / "proc.fits"

        with pytest.raises(MalformedExtension):
            process_file(raw_path, out_path, quiet=True)

        with fits.open(out_path) as hdul:
            assert len(hdul) == 1

    def test_unreadable_input(self, tmp_path):
        bad = tmp_path / "junk.fits"
        bad.write_text("this is not a FITS file")
        with pytest.raises(ContainerIOError) as excinfo:
            process_file(bad, tmp_path / "out.fits", quiet=True)
        assert excinfo.value.status == 104

    def test_saturation_warning(self, tmp_path, synthetic_raw):
        """Saturated pixels warn but do not change processing."""
        raw = synthetic_raw(n_samples=2, height=4, dtype=np.uint16)
        raw[0, 0] = 65535
        raw_path = tmp_path / "sat.fits"
        fits.HDUList([fits.PrimaryHDU(), fits.ImageHDU(raw)]).writeto(raw_path)

        with pytest.warns(SaturationWarning):
            result = process_file(raw_path, tmp_path / "out.fits", quiet=True)

        assert result.extensions[1].n_saturated == 1
        assert result.extensions[1].bitpix == 16

    def test_saturation_check_disabled(self, tmp_path, synthetic_raw, recwarn):
        raw = synthetic_raw(n_samples=2, height=4, dtype=np.uint16)
        raw[0, 0] = 65535
        raw_path = tmp_path / "sat.fits"
        fits.HDUList([fits.PrimaryHDU(), fits.ImageHDU(raw)]).writeto(raw_path)

        result = process_file(
            raw_path, tmp_path / "out.fits", config=ProcessConfig(check_saturation=False), quiet=True
        )
        assert result.extensions[1].n_saturated == 0
        assert not [w for w in recwarn if issubclass(w.category, SaturationWarning)]

    def test_image_primary(self, tmp_path, synthetic_raw):
        """An image in the primary HDU is processed like any extension."""
        raw_path = tmp_path / "prim.fits"
        fits.PrimaryHDU(synthetic_raw(n_samples=2, height=3)).writeto(raw_path)
        out_path = tmp_path / "proc.fits"

        process_file(raw_path, out_path, config=ProcessConfig(save_samples=True), quiet=True)

        with fits.open(out_path) as hdul:
            assert len(hdul) == 1
            assert hdul[0].data.shape == (3, 1000)
        with fits.open(tmp_path / "samples_proc.fits") as hdul:
            assert len(hdul) == 3
