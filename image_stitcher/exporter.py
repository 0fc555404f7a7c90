"""Export of the interactive grid to an image file."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from utils.validation import validate_output_dir, validate_output_path

from . import config
from .compositor import render_full
from .encoding import OutputFormat, encode_image
from .grid import GridModel

LOGGER = logging.getLogger(__name__)


def export_filename(fmt: "str | OutputFormat", moment: Optional[datetime] = None) -> str:
    """Return ``stitched-<timestamp>.<ext>`` for *moment* (UTC, default now)."""
    fmt = OutputFormat.parse(fmt)
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    stamp = moment.strftime(config.EXPORT_TIMESTAMP_FORMAT)
    return f"{config.EXPORT_FILENAME_PREFIX}-{stamp}.{fmt.extension}"


class Exporter:
    """Render a grid model and persist the encoded result."""

    def export(
        self,
        model: GridModel,
        output_dir: Union[str, Path],
        fmt: "str | OutputFormat" = OutputFormat.PNG,
        quality: int = config.QUALITY_DEFAULT,
        *,
        moment: Optional[datetime] = None,
    ) -> Path:
        """
        Render *model* and write it into *output_dir*.

        Returns:
            Path: Location of the written file

        Raises:
            ValueError: If the directory or options are invalid
            EncodeError: If Qt cannot encode the surface
            OSError: If the file cannot be written
        """
        fmt = OutputFormat.parse(fmt)
        directory = validate_output_dir(output_dir)
        target = validate_output_path(directory / export_filename(fmt, moment), {fmt.extension})

        surface = render_full(model)
        data = encode_image(surface, fmt, quality)
        target.write_bytes(data)
        LOGGER.info(
            "Exported %dx%d grid to %s (%d bytes)",
            surface.width(),
            surface.height(),
            target,
            len(data),
        )
        return target


__all__ = ["Exporter", "export_filename"]
