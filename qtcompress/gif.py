# qtcompress/gif.py
import logging
from pathlib import Path
from typing import List, Sequence, Union

import numpy as np
from PIL import Image, ImageDraw

from .exceptions import ImageIOError, InvalidParameterError
from .params import GIF_FINAL_FRAME_MS, GIF_FRAME_MS, GIF_MAX_PIXELS, MAX_FRAMES

log = logging.getLogger(__name__)

# info box drawn on each frame
BOX_X, BOX_Y, BOX_W, BOX_H = 10, 10, 200, 50


def select_frames(frames: Sequence[np.ndarray], max_frames: int = MAX_FRAMES) -> List[np.ndarray]:
    """Evenly thin out frames, always keeping the first and the last."""
    if max_frames < 2:
        raise InvalidParameterError(f"max_frames must be >= 2 to keep the first and last frame, got {max_frames}")
    n = len(frames)
    if n <= max_frames:
        return list(frames)
    idx = np.unique(np.linspace(0, n - 1, num=max_frames).round().astype(int))
    return [frames[i] for i in idx]


def _progress_label(i: int, n: int) -> str:
    if i == 0:
        return "Original Image"
    if i == n - 1:
        return "Final Compression"
    return f"Quadtree Formation {round(i / (n - 1) * 100)}%"


def annotate_frame(frame: Image.Image, i: int, n: int) -> Image.Image:
    if frame.width < BOX_X + BOX_W + 10 or frame.height < BOX_Y + BOX_H + 10:
        return frame
    overlay = Image.new("RGBA", frame.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    draw.rectangle([BOX_X, BOX_Y, BOX_X + BOX_W, BOX_Y + BOX_H], fill=(0, 0, 0, 150))
    draw.text((BOX_X + 10, BOX_Y + 5), f"Frame {i + 1} of {n}", fill=(255, 255, 255, 255))
    draw.text((BOX_X + 10, BOX_Y + 20), _progress_label(i, n), fill=(255, 255, 255, 255))
    bar_w, bar_h = BOX_W - 20, 8
    bar_x, bar_y = BOX_X + 10, BOX_Y + BOX_H - bar_h - 5
    draw.rectangle([bar_x, bar_y, bar_x + bar_w, bar_y + bar_h], fill=(64, 64, 64, 255))
    fill_w = int(bar_w * (i / (n - 1))) if n > 1 else bar_w
    if fill_w > 0:
        draw.rectangle([bar_x, bar_y, bar_x + fill_w, bar_y + bar_h], fill=(0, 255, 0, 255))
    return Image.alpha_composite(frame.convert("RGBA"), overlay).convert("RGB")


def save_gif(frames: Sequence[np.ndarray], path: Union[str, Path],
             frame_ms: int = GIF_FRAME_MS, final_ms: int = GIF_FINAL_FRAME_MS,
             max_frames: int = MAX_FRAMES, max_pixels: int = GIF_MAX_PIXELS,
             annotate: bool = True) -> int:
    """Write frames as a looping GIF. Returns the number of frames written."""
    if not frames:
        raise InvalidParameterError("no frames provided")
    chosen = select_frames(frames, max_frames)
    h, w = chosen[0].shape[:2]
    size = (w, h)
    if w * h > max_pixels:
        scale = (max_pixels / (w * h)) ** 0.5
        size = (max(1, int(w * scale)), max(1, int(h * scale)))
        log.info("scaling GIF to %d%% to bound its size", int(scale * 100))

    images = []
    for i, arr in enumerate(chosen):
        img = Image.fromarray(arr)
        if img.size != size:
            img = img.resize(size, Image.BILINEAR)
        if annotate:
            img = annotate_frame(img, i, len(chosen))
        images.append(img)

    durations = [frame_ms] * (len(images) - 1) + [final_ms]
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        images[0].save(path, format="GIF", save_all=True, append_images=images[1:],
                       duration=durations, loop=0)
    except OSError as e:
        raise ImageIOError(f"cannot write GIF {path}: {e}") from e
    log.info("wrote GIF with %d frames to %s", len(images), path)
    return len(images)
