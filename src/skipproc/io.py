"""
FITS I/O for Skipper CCD files.

Handles:
- Reading raw extensions with correct BZERO/BSCALE handling
- Classifying image and non-image extensions
- Streaming output planes to disk in order
- Verbatim copies of tables and header-only extensions
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from astropy.io import fits

from .errors import (
    FILE_NOT_CREATED,
    FILE_NOT_OPENED,
    READ_ERROR,
    WRITE_ERROR,
    ContainerIOError,
    MalformedExtension,
)

logger = logging.getLogger(__name__)

# Keywords that describe the stored (integer) encoding, not the float output
SCALING_KEYWORDS = ("BZERO", "BSCALE", "BLANK", "CHECKSUM", "DATASUM")


@dataclass
class ImagePlane:
    """One 2-D image extension read as float64."""

    index: int
    data: np.ndarray
    header: fits.Header
    bitpix: int
    bzero: float = 0.0

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def width(self) -> int:
        return self.data.shape[1]


class FitsReader:
    """
    Read access to the extensions of an input FITS file.

    Example
    -------
    >>> with FitsReader("raw.fits") as reader:
    ...     for i in range(reader.plane_count()):
    ...         if reader.is_image_plane(i):
    ...             plane = reader.read_plane(i)
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        try:
            self._hdul = fits.open(self.path, memmap=False, lazy_load_hdus=False)
        except (OSError, ValueError) as exc:
            raise ContainerIOError(f"Cannot open {self.path}: {exc}", FILE_NOT_OPENED) from exc
        logger.debug("Opened %s (%d HDUs)", self.path, len(self._hdul))

    def __enter__(self) -> FitsReader:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._hdul.close()

    def plane_count(self) -> int:
        return len(self._hdul)

    def hdu(self, index: int):
        return self._hdul[index]

    def header(self, index: int) -> fits.Header:
        return self._hdul[index].header

    def raw_block(self, index: int) -> bytes:
        """
        Header and data bytes of an extension exactly as stored on disk.

        The block spans whole 2880-byte records, padding included.
        """
        info = self._hdul.fileinfo(index)
        start = info["hdrLoc"]
        size = info["datLoc"] + info["datSpan"] - start
        try:
            with open(self.path, "rb") as f:
                f.seek(start)
                block = f.read(size)
        except OSError as exc:
            raise ContainerIOError(
                f"Cannot read extension {index} of {self.path}: {exc}", READ_ERROR
            ) from exc
        if len(block) != size:
            raise ContainerIOError(
                f"Extension {index} of {self.path} is truncated ({len(block)} of {size} bytes)",
                READ_ERROR,
            )
        return block

    def is_image_plane(self, index: int) -> bool:
        """
        True for image extensions holding at least one pixel.

        Tables, header-only primaries and null images are not image planes.
        """
        hdu = self._hdul[index]
        if not hdu.is_image:
            return False
        naxis = hdu.header.get("NAXIS", 0)
        if naxis == 0:
            return False
        return all(hdu.header.get(f"NAXIS{i}", 0) > 0 for i in range(1, naxis + 1))

    def image_shape(self, index: int) -> tuple[int, int]:
        """(height, width) of a 2-D image extension, from its header."""
        header = self._hdul[index].header
        if header.get("NAXIS", 0) != 2:
            raise MalformedExtension(
                f"Extension {index} has NAXIS={header.get('NAXIS')}, expected a 2-D image"
            )
        return header["NAXIS2"], header["NAXIS1"]

    def read_plane(self, index: int) -> ImagePlane:
        """
        Read an image extension as float64 physical values.

        The HDU's cached data is released once converted.
        """
        hdu = self._hdul[index]
        self.image_shape(index)

        # astropy rewrites BITPIX/BZERO once scaled data is loaded
        header = hdu.header.copy()
        bitpix = header["BITPIX"]
        bzero = header.get("BZERO", 0.0)

        try:
            data = np.array(hdu.data, dtype=np.float64)
        except (OSError, ValueError, TypeError) as exc:
            raise ContainerIOError(
                f"Cannot read extension {index} of {self.path}: {exc}", READ_ERROR
            ) from exc
        del hdu.data

        logger.debug("Read extension %d: shape=%s bitpix=%d", index, data.shape, bitpix)
        return ImagePlane(index=index, data=data, header=header, bitpix=bitpix, bzero=bzero)


def image_header(source: fits.Header | None = None, **cards) -> fits.Header:
    """
    Header for a float output image derived from a source header.

    Scaling and checksum keywords are dropped; structural keywords are
    regenerated by astropy from the data. Extra keyword arguments are
    set as header cards.
    """
    header = fits.Header() if source is None else source.copy()
    for key in SCALING_KEYWORDS:
        header.remove(key, ignore_missing=True, remove_all=True)
    for key, value in cards.items():
        header[key.upper()] = value
    return header


class FitsWriter:
    """
    Output FITS file written one extension at a time.

    The first plane becomes the primary HDU. Each plane is on disk as soon
    as it is written, so an aborted run leaves the planes already produced.
    """

    def __init__(self, path: str | Path, overwrite: bool = False):
        self.path = Path(path)
        self.plane_count = 0

        if self.path.exists() and not overwrite:
            raise ContainerIOError(f"Output file already exists: {self.path}", FILE_NOT_CREATED)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ContainerIOError(f"Cannot create {self.path}: {exc}", FILE_NOT_CREATED) from exc
        self._overwrite = overwrite

    def _append_raw(self, block: bytes) -> None:
        try:
            if self.plane_count == 0:
                with open(self.path, "wb" if self._overwrite else "xb") as f:
                    f.write(block)
            else:
                with open(self.path, "ab") as f:
                    f.write(block)
        except OSError as exc:
            status = FILE_NOT_CREATED if self.plane_count == 0 else WRITE_ERROR
            raise ContainerIOError(f"Cannot write {self.path}: {exc}", status) from exc

        self.plane_count += 1

    def _append(self, hdu) -> None:
        try:
            if self.plane_count == 0:
                if not isinstance(hdu, fits.PrimaryHDU):
                    hdu = fits.PrimaryHDU(data=hdu.data, header=hdu.header)
                hdu.writeto(self.path, overwrite=self._overwrite)
            else:
                if isinstance(hdu, fits.PrimaryHDU):
                    hdu = fits.ImageHDU(data=hdu.data, header=hdu.header)
                with fits.open(self.path, mode="append") as hdul:
                    hdul.append(hdu)
        except OSError as exc:
            status = FILE_NOT_CREATED if self.plane_count == 0 else WRITE_ERROR
            raise ContainerIOError(f"Cannot write {self.path}: {exc}", status) from exc

        self.plane_count += 1

    def copy_plane_verbatim(self, reader: FitsReader, index: int) -> None:
        """
        Append a byte-for-byte copy of an input extension.

        Header cards keep their order and any CHECKSUM/DATASUM stays valid.
        A primary HDU can only be copied as the first plane and an
        extension only after it.
        """
        is_primary = isinstance(reader.hdu(index), fits.PrimaryHDU)
        if is_primary != (self.plane_count == 0):
            raise ValueError(
                f"Extension {index} cannot be copied verbatim as plane {self.plane_count} of {self.path}"
            )
        self._append_raw(reader.raw_block(index))
        logger.debug("Copied extension %d to %s as plane %d", index, self.path.name, self.plane_count - 1)

    def write_image_plane(self, data: np.ndarray, header: fits.Header | None = None) -> None:
        """Append a float32 image plane."""
        hdu = fits.ImageHDU(data=np.asarray(data, dtype=np.float32), header=image_header(header))
        self._append(hdu)


def remove_existing(path: str | Path) -> bool:
    """
    Delete an existing output file.

    Returns
    -------
    bool
        True if a file was removed.
    """
    path = Path(path)
    if not path.exists():
        return False
    try:
        path.unlink()
    except OSError as exc:
        raise ContainerIOError(f"Cannot remove existing output {path}: {exc}", FILE_NOT_CREATED) from exc
    logger.info("Removed existing output: %s", path)
    return True
