"""Build orchestration: load -> resolve -> validate -> render"""

import logging
from pathlib import Path

from lessonpub.config import Settings
from lessonpub.core.models import BuildResult, BuildStage, SourceUnit
from lessonpub.core.parse import load_corpus, read_sources
from lessonpub.core.render import build_listing, render_corpus
from lessonpub.core.resolve import resolve_corpus
from lessonpub.core.snippets import validate_corpus


logger = logging.getLogger(__name__)

_STAGES = list(BuildStage)


def _advance(result: BuildResult, stage: BuildStage) -> None:
    """Move the build forward one stage; backward or skipped transitions are a bug."""
    if _STAGES.index(stage) != _STAGES.index(result.stage) + 1:
        raise RuntimeError(f"Invalid build transition {result.stage.value} -> {stage.value}")
    logger.info("Build stage: %s -> %s", result.stage.value, stage.value)
    result.stage = stage


def run_units(units: list[SourceUnit], settings: Settings) -> BuildResult:
    """Run the full pipeline over already-read source units.

    Collected errors never stop the build; ParseError drops the document
    before it reaches later stages.
    """
    result = BuildResult()
    fmt = settings.output_format

    corpus, parse_errors = load_corpus(units, reserved=frozenset({settings.listing_name}))
    result.corpus = corpus
    result.report.extend(parse_errors)
    logger.info("Loaded %d document(s), %d dropped", len(corpus), len(parse_errors))

    _advance(result, BuildStage.resolving)
    resolutions = resolve_corpus(corpus, settings.base_url, fmt, settings.parser_config, settings.workers)
    for res in resolutions.values():
        result.report.extend(res.errors)

    _advance(result, BuildStage.validating)
    snippets = validate_corpus(corpus, settings.parser_config, settings.unchecked_languages, settings.workers)
    for rep in snippets.values():
        result.report.extend(rep.errors)

    _advance(result, BuildStage.rendering)
    result.pages = render_corpus(corpus, resolutions, snippets, fmt, settings.base_url, settings.parser_config)
    result.listing = build_listing(result.pages)

    _advance(result, BuildStage.done)
    for e in result.report.errors:
        logger.debug("Collected: %s", e)
    logger.info("Build %s with %d collected error(s)", result.status.value, len(result.report.errors))
    return result


def run_build(source_dir: Path, settings: Settings = None) -> BuildResult:
    """Read source_dir and build it. FatalIOError propagates and aborts."""
    settings = settings or Settings()
    return run_units(read_sources(Path(source_dir)), settings)
