#!/usr/bin/env python3
"""
web/app.py - Web entrypoint for the Quadtree Image Compressor.

Features:
- AJAX-friendly compress endpoint (returns JSON with base64 previews)
- Any of the five error methods, manual threshold or target-ratio tuning
- Saves the reconstruction to the output directory and returns a download link

Usage (dev):
    python web/app.py
"""

import base64
import io
import os
import secrets
import sys
from pathlib import Path

from flask import Flask, request, render_template, send_file, redirect, url_for, flash, jsonify
from werkzeug.utils import secure_filename
from PIL import Image, UnidentifiedImageError
import numpy as np

# Ensure project root is importable
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from qtcompress import CompressionParams, ErrorMethod, ImageCompressor, describe_error
from qtcompress.exceptions import InvalidParameterError
from qtcompress.params import MAX_INPUT_PIXELS
from qtcompress.quadtree_core import fit_to_pixels
from qtcompress.stats import format_psnr

ALLOWED = {"png", "jpg", "jpeg", "bmp"}

app = Flask(__name__, static_folder=str(PROJECT_ROOT / "web" / "static"), template_folder=str(PROJECT_ROOT / "web" / "templates"))
app.secret_key = os.environ.get("FLASK_SECRET", "change_me_for_prod")
app.config["OUTPUT_DIR"] = Path(os.environ.get("QTCOMPRESS_OUTPUT_DIR", PROJECT_ROOT / "output"))


def output_dir() -> Path:
    d = Path(app.config["OUTPUT_DIR"])
    d.mkdir(parents=True, exist_ok=True)
    return d


def allowed_filename(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED


def pil_to_bytes_io(img: Image.Image, fmt="PNG"):
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    buf.seek(0)
    return buf


def params_from_form(form) -> CompressionParams:
    """Build validated params from the upload form; raises InvalidParameterError."""
    method = ErrorMethod.parse((form.get("method") or "variance").strip())

    def number(name, cast, default):
        raw = (form.get(name) or "").strip()
        if raw == "":
            return default
        try:
            return cast(raw)
        except ValueError:
            raise InvalidParameterError(f"invalid {name.replace('_', ' ')} value: {raw!r}") from None

    threshold = number("threshold", float, method.suggested_range[0])
    min_block = number("min_block", int, 4)
    target_ratio = number("target_ratio", float, 0.0)
    return CompressionParams.create(method, threshold=threshold, min_block_size=min_block, target_ratio=target_ratio)


@app.route("/", methods=["GET"])
def index():
    return render_template("index.html", result=None, methods=list(ErrorMethod), default_min_block=4)


@app.route("/compress", methods=["POST"])
def compress():
    """
    Main compress endpoint.
    If request is AJAX (X-Requested-With: XMLHttpRequest) or Accept: application/json -> return JSON.
    Otherwise render template fallback.
    """
    prefer_json = (request.headers.get("X-Requested-With") == "XMLHttpRequest") or ("application/json" in (request.headers.get("Accept") or ""))

    def respond_error(msg, http_code=400):
        if prefer_json:
            return jsonify({"error": msg}), http_code
        flash(msg)
        return redirect(url_for("index"))

    if "image" not in request.files:
        return respond_error("No file uploaded")
    file = request.files["image"]
    if file.filename == "":
        return respond_error("No file selected")
    if not allowed_filename(file.filename):
        return respond_error("Unsupported file type (allowed: png, jpg, jpeg, bmp)")

    try:
        params = params_from_form(request.form)
    except InvalidParameterError as e:
        return respond_error(str(e), 400)

    try:
        pil = Image.open(file.stream).convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        return respond_error(f"Cannot open image: {e}", 400)

    arr = fit_to_pixels(np.array(pil), MAX_INPUT_PIXELS)
    try:
        res = ImageCompressor(params).compress_array(arr)
    except Exception as e:
        category, msg = describe_error(e)
        app.logger.exception("compression failed")
        return respond_error(f"Compression failed ({category}): {msg}", 400 if isinstance(e, InvalidParameterError) else 500)

    pil_recon = Image.fromarray(res.image)
    uid = secrets.token_hex(8)
    recon_name = f"recon_{uid}.png"
    pil_recon.save(output_dir() / recon_name, format="PNG")

    result = {
        "method": params.method.label,
        "psnr": format_psnr(res.psnr),
        "nodes": res.tree.node_count,
        "leaves": res.tree.leaf_count,
        "depth": res.tree.depth,
        "ratio": f"{res.tree.compression_ratio:.4f}",
        "used_threshold": f"{res.threshold:.4f}",
        "tuned": res.tuning is not None,
        "elapsed_ms": round(res.elapsed * 1000.0, 1),
        "recon_name": recon_name,
        "msg": "Auto-tuned threshold" if res.tuning is not None else "Manual threshold",
    }

    if prefer_json:
        result["orig_b64"] = base64.b64encode(pil_to_bytes_io(pil).getvalue()).decode("ascii")
        result["recon_b64"] = base64.b64encode(pil_to_bytes_io(pil_recon).getvalue()).decode("ascii")
        return jsonify(result)

    return render_template("index.html", result=result, methods=list(ErrorMethod), default_min_block=params.min_block_size)


@app.route("/download/recon/<fname>")
def download_recon(fname):
    p = output_dir() / secure_filename(fname)
    if not p.exists():
        flash("File not found")
        return redirect(url_for("index"))
    return send_file(str(p), as_attachment=True)


if __name__ == "__main__":
    print("Starting quadtree web app on http://127.0.0.1:5000")
    app.run(host="0.0.0.0", port=5000, debug=True)
