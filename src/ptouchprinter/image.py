"""
Image Rasterization for P-touch Printers.

Converts images to the 1-bit raster rows the print head expects.
One raster row runs across the tape (the print head direction), so an
image must have the raster width either as its width or as its height.
"""

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Iterator, Union

from PIL import Image

from .errors import DimensionMismatch, ImageError

# Pixels per raster row; every tape width uses the same head width.
DEFAULT_RASTER_WIDTH_PX = 720

# Image size limits to prevent memory exhaustion from malicious/malformed images
MAX_IMAGE_DIMENSION = 20000
MAX_IMAGE_PIXELS = 20_000_000

# Luminance weights (R, G, B)
LUMA_WEIGHTS = (55, 182, 18)
DARK_THRESHOLD = 0.5


class ImageSizeError(ImageError):
    """Image dimensions exceed safety limits."""

    pass


@dataclass(frozen=True)
class RasterBuffer:
    """
    Packed 1-bit raster, one row per print head line.

    Bits are MSB first and 1 means a burnt (dark) dot. Every row is
    exactly `stride` bytes long.
    """

    data: bytes
    width: int
    height: int

    @property
    def stride(self) -> int:
        """Bytes per row."""
        return (self.width + 7) // 8

    def __len__(self) -> int:
        return self.height

    def rows(self) -> Iterator[bytes]:
        """Iterate over rows as bytes."""
        stride = self.stride
        for offset in range(0, len(self.data), stride):
            yield self.data[offset:offset + stride]

    def dump(self) -> str:
        """Render rows as lines of 0/1 characters (for debugging)."""
        return "\n".join(
            "".join(f"{byte:08b}" for byte in row) for row in self.rows()
        )


def luminance(r: int, g: int, b: int, a: int = 255) -> float:
    """
    Weighted luminance of an 8-bit RGBA pixel in [0, 1].

    Color is premultiplied by alpha, so transparent pixels count as black.
    """
    weighted = LUMA_WEIGHTS[0] * r + LUMA_WEIGHTS[1] * g + LUMA_WEIGHTS[2] * b
    return (weighted * a / 255) / (255 * sum(LUMA_WEIGHTS))


class ImageRasterizer:
    """Turn images into print head oriented raster buffers."""

    def __init__(self, raster_width: int = DEFAULT_RASTER_WIDTH_PX, invert: bool = False):
        """
        Initialize rasterizer.

        Args:
            raster_width: Pixels per raster row expected by the device
            invert: Burn light pixels instead of dark ones
        """
        self.raster_width = raster_width
        self.invert = invert

    def load(self, source: Union[str, Path, bytes, Image.Image]) -> Image.Image:
        """
        Load an image from various sources.

        Args:
            source: File path, bytes, or PIL Image

        Returns:
            PIL Image object

        Raises:
            ImageSizeError: If image dimensions exceed safety limits
            ImageError: If the source cannot be read as an image
        """
        try:
            if isinstance(source, Image.Image):
                img = source
            elif isinstance(source, (str, Path)):
                path = Path(source)
                if not path.exists():
                    raise ImageError(f"Image file not found: {path}")
                img = Image.open(path)
            elif isinstance(source, bytes):
                img = Image.open(BytesIO(source))
            else:
                raise ImageError(f"Unsupported image type: {type(source)}")
        except ImageError:
            raise
        except Exception as e:
            raise ImageError(f"Failed to load image: {e}") from e

        if img.width > MAX_IMAGE_DIMENSION or img.height > MAX_IMAGE_DIMENSION:
            raise ImageSizeError(
                f"Image dimensions ({img.width}x{img.height}) exceed maximum "
                f"({MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION})"
            )
        if img.width * img.height > MAX_IMAGE_PIXELS:
            raise ImageSizeError(
                f"Image pixel count ({img.width * img.height:,}) exceeds "
                f"maximum ({MAX_IMAGE_PIXELS:,})"
            )

        return img

    def orient(self, image: Image.Image) -> Image.Image:
        """
        Rotate or mirror the image so rows run along the print head.

        Raises:
            DimensionMismatch: If neither side equals the raster width
        """
        if image.width == self.raster_width:
            return image.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
        if image.height == self.raster_width:
            return image.transpose(Image.Transpose.TRANSPOSE)
        raise DimensionMismatch(self.raster_width, image.size)

    def is_dark(self, r: int, g: int, b: int, a: int = 255) -> bool:
        """Whether a pixel gets burnt."""
        dark = luminance(r, g, b, a) <= DARK_THRESHOLD
        return not dark if self.invert else dark

    def rasterize(self, image: Image.Image) -> tuple[RasterBuffer, int]:
        """
        Convert an image into a raster buffer.

        Returns:
            (RasterBuffer, stride in bytes)

        Raises:
            DimensionMismatch: If neither side equals the raster width
        """
        canvas = self.orient(image)
        if canvas.mode != "RGBA":
            canvas = canvas.convert("RGBA")

        width, height = canvas.size
        stride = (width + 7) // 8
        data = bytearray(stride * height)
        pixels = canvas.load()

        for y in range(height):
            row_offset = y * stride
            for x in range(width):
                if self.is_dark(*pixels[x, y]):
                    data[row_offset + x // 8] |= 0x80 >> (x % 8)

        return RasterBuffer(bytes(data), width, height), stride


def rasterize(
    image: Image.Image,
    raster_width: int = DEFAULT_RASTER_WIDTH_PX,
    invert: bool = False,
) -> tuple[RasterBuffer, int]:
    """Rasterize with a throwaway ImageRasterizer, see ImageRasterizer.rasterize."""
    return ImageRasterizer(raster_width, invert=invert).rasterize(image)
