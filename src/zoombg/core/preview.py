"""
Browser preview of a generated image.

The image is embedded as a base64 data URL in a small HTML page written to a
fresh temporary directory, which is removed when the resource scope closes.
"""

import base64
import html
import shutil
import tempfile
from pathlib import Path

import click

from zoombg.logging_config import get_logger
from zoombg.utils.cleanup import ResourceScope

logger = get_logger(__name__)

TEMP_DIR_PREFIX = "zoombg-"

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <style>
    * {{ margin: 0; padding: 0; box-sizing: border-box; }}
    body {{
      background-color: #1a1a1a;
      display: flex;
      justify-content: center;
      align-items: center;
      min-height: 100vh;
      padding: 20px;
    }}
    img {{
      max-width: 90vw;
      max-height: 90vh;
      object-fit: contain;
      box-shadow: 0 8px 32px rgba(0, 0, 0, 0.5);
      border-radius: 4px;
    }}
  </style>
</head>
<body>
  <img src="{src}" alt="Generated Background" />
</body>
</html>
"""


def render_preview_html(
    image_bytes: bytes, content_type: str = "image/png", title: str = "Zoom Background Preview"
) -> str:
    """Return an HTML document that displays ``image_bytes``."""
    data = base64.b64encode(image_bytes).decode("ascii")
    return _PAGE.format(title=html.escape(title), src=f"data:{content_type};base64,{data}")


class BrowserPreview:
    """Opens generated images in the default browser. Never raises."""

    def __init__(self, scope: ResourceScope | None = None, launcher=click.launch) -> None:
        self.scope = scope
        self._launch = launcher

    def show(self, image_bytes: bytes, fmt: str = "png") -> Path | None:
        """Write and open the preview page; return its path, or None on failure."""
        temp_dir: Path | None = None
        try:
            temp_dir = Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX))
            if self.scope is not None:
                self.scope.register(
                    lambda d=temp_dir: shutil.rmtree(d, ignore_errors=False),
                    f"preview directory {temp_dir}",
                )
            page = temp_dir / "preview.html"
            page.write_text(render_preview_html(image_bytes, f"image/{fmt}"), encoding="utf-8")
            self._launch(page.resolve().as_uri())
            logger.debug("Opened preview %s", page)
            return page
        except Exception as e:
            logger.warning("Could not open preview: %s", e)
            if temp_dir is not None and self.scope is None:
                shutil.rmtree(temp_dir, ignore_errors=True)
            return None
