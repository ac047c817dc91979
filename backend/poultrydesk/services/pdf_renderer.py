# Overview: HTML -> PDF through the external weasyprint process, bounded by a timeout.

from __future__ import annotations

import os
import subprocess

from flask import current_app


class PdfRenderError(Exception):
    """Renderer missing or not runnable, timed out, failed, or wrote nothing."""
    pass


def _discard(path: str) -> None:
    if os.path.exists(path):
        os.remove(path)


def render_pdf(
    html: str,
    output_path: str,
    *,
    base_url: str | None = None,
    binary: str | None = None,
    timeout: int | None = None,
) -> str:
    """
    Pipe `html` into the renderer and write `output_path`.

    Runs `<binary> [--base-url URL] - <output_path>` with the HTML on stdin.
    On any failure the partial output file is removed and PdfRenderError
    is raised.
    """
    binary = binary or current_app.config.get("PDF_RENDERER_BIN", "weasyprint")
    timeout = timeout or current_app.config.get("PDF_RENDER_TIMEOUT_SECONDS", 60)

    cmd = [binary]
    if base_url:
        cmd += ["--base-url", base_url]
    cmd += ["-", output_path]

    try:
        result = subprocess.run(
            cmd,
            input=html.encode("utf-8"),
            capture_output=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        _discard(output_path)
        raise PdfRenderError(f"PDF renderer not found: {binary}") from exc
    except subprocess.TimeoutExpired as exc:
        _discard(output_path)
        raise PdfRenderError(f"PDF renderer timed out after {timeout}s") from exc
    except OSError as exc:
        _discard(output_path)
        raise PdfRenderError(f"PDF renderer could not be started: {exc}") from exc

    if result.returncode != 0:
        _discard(output_path)
        stderr = (result.stderr or b"").decode("utf-8", errors="replace").strip()
        raise PdfRenderError(f"PDF renderer exited with status {result.returncode}: {stderr[:500]}")

    if not os.path.exists(output_path) or os.path.getsize(output_path) == 0:
        _discard(output_path)
        raise PdfRenderError("PDF renderer produced no output")

    return output_path
