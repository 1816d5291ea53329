"""Static Mel-scale spectrogram rendering.

The heatmap is a windowed-energy approximation rather than a true filter
bank: every cell in a time slice shares the slice's mean absolute amplitude,
scaled by a per-cell random gain. The vertical axis is ``bands`` rows of cells,
band 0 at the bottom; ``mel_band_edges`` gives the Hz range each band stands
for (``edges[k]`` to ``edges[k + 1]``), evenly spaced on the Mel scale so the
axis matches what the CNN-style front end would see.
"""

import io
import logging

import numpy as np
from PIL import Image

from speech_emotion.models.emotion import SampleBuffer, SpectrogramImage

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 1200
DEFAULT_HEIGHT = 480
DEFAULT_BANDS = 128
ENERGY_WINDOW = 256
BACKGROUND_RGB = (0x02, 0x06, 0x17)  # #020617
GRID_ALPHA = 0.05
GRID_COLUMNS = 10
GRID_ROWS = 5


def hz_to_mel(hz: float | np.ndarray) -> float | np.ndarray:
    return 2595.0 * np.log10(1.0 + np.asarray(hz, dtype=np.float64) / 700.0)


def mel_to_hz(mel: float | np.ndarray) -> float | np.ndarray:
    return 700.0 * (np.power(10.0, np.asarray(mel, dtype=np.float64) / 2595.0) - 1.0)


def mel_band_edges(sample_rate: int, bands: int = DEFAULT_BANDS) -> np.ndarray:
    """``bands + 1`` edges in Hz, evenly spaced in Mel space up to Nyquist."""
    max_mel = hz_to_mel(sample_rate / 2)
    return mel_to_hz(np.linspace(0.0, max_mel, bands + 1))


def plasma_colormap(values: np.ndarray) -> np.ndarray:
    """Map intensities in [0, 255] to RGB floats (shape ``values.shape + (3,)``).

    Dark blue -> purple -> magenta -> orange -> yellow in four linear segments.
    """
    v = np.asarray(values, dtype=np.float64)
    seg = np.select([v < 64, v < 128, v < 192], [0, 1, 2], default=3)

    r = np.select(
        [seg == 0, seg == 1],
        [v * 2, 128 + (v - 64) * 2],
        default=255.0,
    )
    g = np.select(
        [seg <= 1, seg == 2],
        [np.zeros_like(v), (v - 128) * 2],
        default=128 + (v - 192) * 2,
    )
    b = np.select(
        [seg == 0, seg == 1, seg == 2],
        [128 + v * 2, 255 - (v - 64) * 2, np.zeros_like(v)],
        default=(v - 192) * 4,
    )
    # Fractional intensities just below a segment edge overshoot by < 2
    return np.clip(np.stack([r, g, b], axis=-1), 0.0, 255.0)


def plasma_color(value: float) -> tuple[int, int, int]:
    r, g, b = plasma_colormap(np.array(value))
    return int(round(r)), int(round(g)), int(round(b))


class SpectrogramSynthesizer:
    """Renders a SampleBuffer as a PNG heatmap with a Mel-spaced band axis."""

    def __init__(self, rng: np.random.Generator | None = None, bands: int = DEFAULT_BANDS) -> None:
        if bands < 1:
            raise ValueError("bands must be at least 1")
        self._rng = rng if rng is not None else np.random.default_rng()
        self.bands = bands

    def render(
        self,
        buffer: SampleBuffer,
        width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
    ) -> SpectrogramImage:
        pixels = self.render_array(buffer, width, height)
        out = io.BytesIO()
        Image.fromarray(pixels).save(out, format="PNG")
        return SpectrogramImage(width=width, height=height, bands=self.bands, png=out.getvalue())

    def render_array(self, buffer: SampleBuffer, width: int, height: int) -> np.ndarray:
        """Raw ``(height, width, 3)`` uint8 raster, before PNG encoding."""
        if width < 1 or height < 1:
            raise ValueError(f"Spectrogram dimensions must be positive, got {width}x{height}")

        canvas = np.empty((height, width, 3), dtype=np.float64)
        canvas[:] = BACKGROUND_RGB

        if len(buffer) == 0:
            logger.info("Empty buffer, rendering background-only spectrogram")
        else:
            canvas[:] = self._heatmap(buffer.samples, width, height)

        self._draw_grid(canvas)
        return np.clip(np.rint(canvas), 0, 255).astype(np.uint8)

    def slice_energy(self, samples: np.ndarray, width: int) -> np.ndarray:
        """Mean absolute amplitude of a fixed window at the start of each slice."""
        n = samples.shape[0]
        step = n // width
        starts = np.arange(width) * step
        ends = np.minimum(starts + ENERGY_WINDOW, n)
        cumulative = np.concatenate(([0.0], np.cumsum(np.abs(samples), dtype=np.float64)))
        return (cumulative[ends] - cumulative[starts]) / ENERGY_WINDOW

    def _heatmap(self, samples: np.ndarray, width: int, height: int) -> np.ndarray:
        energy = self.slice_energy(samples, width)
        gain = 5.0 + self._rng.uniform(0.0, 2.0, size=(width, self.bands))
        intensity = np.minimum(1.0, energy[:, None] * gain) * 255.0
        colors = plasma_colormap(intensity)  # (width, bands, 3)

        # Band 0 sits at the bottom of the image
        row_centres = np.arange(height) + 0.5
        band_of_row = np.floor((height - row_centres) * self.bands / height).astype(int)
        band_of_row = np.clip(band_of_row, 0, self.bands - 1)
        return colors[:, band_of_row, :].transpose(1, 0, 2)

    @staticmethod
    def _draw_grid(canvas: np.ndarray) -> None:
        height, width = canvas.shape[:2]
        xs = np.unique(np.floor(np.arange(GRID_COLUMNS) * width / GRID_COLUMNS).astype(int))
        ys = np.unique(np.floor(np.arange(GRID_ROWS) * height / GRID_ROWS).astype(int))
        canvas[:, xs] = canvas[:, xs] * (1 - GRID_ALPHA) + 255 * GRID_ALPHA
        canvas[ys, :] = canvas[ys, :] * (1 - GRID_ALPHA) + 255 * GRID_ALPHA
