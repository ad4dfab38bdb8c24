"""Write rendered pages and the listing to the output directory"""

import logging
from pathlib import Path

from lessonpub.core.models import BuildResult
from lessonpub.core.render import listing_html, listing_json
from lessonpub.errors import FatalIOError


logger = logging.getLogger(__name__)


def _write(path: Path, text: str) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding='utf-8')
    except OSError as e:
        raise FatalIOError(str(path), f"cannot write output: {e}") from e
    return path


def write_output(result: BuildResult, output_dir: Path, listing_name: str = 'index') -> list[Path]:
    """Write every page plus <listing_name>.json/.html. Returns written paths in page order.

    Output paths mirror page identifiers:
      output_dir / page.output_path
    """
    output_dir = Path(output_dir)
    written = [_write(output_dir / page.output_path, page.content) for page in result.pages]
    written.append(_write(output_dir / f"{listing_name}.json", listing_json(result.listing)))
    written.append(_write(output_dir / f"{listing_name}.html", listing_html(result.listing)))
    logger.info("Wrote %d file(s) to %s", len(written), output_dir)
    return written
