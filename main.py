"""RPG Maker Auto-Translator — batch LLM translation of MV/MZ data files.

Launch with: python main.py data/Map001.json data/CommonEvents.json
"""

import argparse
import glob
import logging
import os
import signal
import sys

from PyQt6.QtCore import QCoreApplication, QTimer

from autotrans import rpgmaker_mv
from autotrans.api_client import DeepSeekClient, EchoClient
from autotrans.config import (
    SETTINGS_FILE, ConfigError, load_settings, save_settings, validate_run,
)
from autotrans.project_model import RunContext
from autotrans.translation_engine import TranslationEngine

log = logging.getLogger("autotrans")


def _collect_files(inputs: list) -> list:
    """Expand directories into their .json files, keeping argument order."""
    files = []
    for item in inputs:
        if os.path.isdir(item):
            files.extend(sorted(glob.glob(os.path.join(item, "*.json"))))
        else:
            files.append(item)
    return files


def list_texts(files: list, config) -> int:
    """Print every located text as `path<TAB>kind<TAB>text`."""
    for path in files:
        try:
            document = rpgmaker_mv.load_document(path)
        except (OSError, ValueError) as e:
            log.error("Could not read %s: %s", path, e)
            continue
        kind = rpgmaker_mv.classify(path)
        records = rpgmaker_mv.locate(document, kind, config) if kind else []
        print(f"# {os.path.basename(path)}: {len(records)} text(s)")
        for record in records:
            text = record.original.replace("\n", "\\n")
            print(f"{record.path_string}\t{record.kind}\t{text}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="rpgm-autotrans",
        description="Translate RPG Maker MV/MZ data files with an LLM, "
                    "keeping control codes and JSON structure intact.")
    p.add_argument("inputs", nargs="+", help="data files or folders (e.g. www/data)")
    p.add_argument("-o", "--output", default="", help="output folder (default: beside each file)")
    p.add_argument("--settings", default=SETTINGS_FILE, help="settings JSON file")
    p.add_argument("--source", dest="source_language", help="source language code (ja)")
    p.add_argument("--target", dest="target_language", help="target language code (vi)")
    p.add_argument("--batch-size", type=int, help="texts per request (default 10)")
    p.add_argument("--api-key", help="API key (overrides settings / DEEPSEEK_API_KEY)")
    p.add_argument("--skip-translated", action="store_true", default=None,
                   help="skip texts already in the target language")
    p.add_argument("--no-dialogue", dest="translate_dialogue", action="store_false", default=None)
    p.add_argument("--no-names", dest="translate_names", action="store_false", default=None)
    p.add_argument("--no-descriptions", dest="translate_descriptions",
                   action="store_false", default=None)
    p.add_argument("--dry-run", action="store_true",
                   help="echo texts back instead of calling the API")
    p.add_argument("--save-settings", action="store_true",
                   help="write the merged settings back to the settings file")
    p.add_argument("--list", action="store_true",
                   help="print the texts that would be translated and exit")
    p.add_argument("--check", action="store_true",
                   help="test the API key and endpoint before translating")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    settings = load_settings(args.settings)
    files = _collect_files(args.inputs)
    try:
        settings.update(
            source_language=args.source_language,
            target_language=args.target_language,
            batch_size=args.batch_size,
            api_key=args.api_key,
            skip_translated=args.skip_translated,
            translate_dialogue=args.translate_dialogue,
            translate_names=args.translate_names,
            translate_descriptions=args.translate_descriptions,
        )
        validate_run(settings, files, require_key=not (args.dry_run or args.list))
    except ConfigError as e:
        log.error("%s", e)
        return 2

    if args.save_settings:
        save_settings(settings, args.settings)
        log.info("Saved settings to %s", args.settings)

    if args.list:
        return list_texts(files, settings.to_config())

    if args.output:
        os.makedirs(args.output, exist_ok=True)

    if args.dry_run:
        service = EchoClient()
    else:
        service = DeepSeekClient(settings.api_key, settings.api_url, settings.model)
        if args.check and not service.is_available():
            log.error("Cannot reach %s with the configured API key", settings.api_url)
            return 2
    ctx = RunContext(config=settings.to_config(), service=service,
                     batch_delay=settings.batch_delay,
                     temperature=settings.temperature)

    log.info("=== Translating %d file(s): %s -> %s ===", len(files),
             settings.source_language.upper(), settings.target_language.upper())

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName("RPG Maker Auto-Translator")
    engine = TranslationEngine(ctx)
    failures = []

    engine.progress.connect(
        lambda i, total, name: log.info("[%d/%d] %s", i + 1, total, name))
    engine.error.connect(lambda name, msg: failures.append(name))
    engine.finished.connect(app.quit)

    # Ctrl+C pauses at the next batch boundary instead of killing the request
    previous_handler = signal.signal(signal.SIGINT, lambda *_: engine.pause())
    # Let Python see signals while the Qt loop is running
    heartbeat = QTimer()
    heartbeat.timeout.connect(lambda: None)
    heartbeat.start(200)

    QTimer.singleShot(0, lambda: engine.start(files, args.output))
    app.exec()
    heartbeat.stop()
    signal.signal(signal.SIGINT, previous_handler)

    log.info("=== %s ===", ctx.stats.format_summary())
    if ctx.paused:
        log.warning("Stopped early; remaining texts were left untranslated")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
