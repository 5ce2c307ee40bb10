"""Translation engine — runs the locate → batch → apply pipeline.

``TranslationPipeline`` translates one parsed document synchronously.
``TranslationWorker`` / ``TranslationEngine`` drive a queue of files on a
Qt worker thread, one file and one request at a time.
"""

import copy
import logging
import os
import re
import time

from PyQt6.QtCore import QObject, QThread, pyqtSignal

from . import batch_protocol, control_codes, rpgmaker_mv
from .api_client import TranslationServiceError
from .path_address import PathError, set_value
from .project_model import (
    ApplyFailure, BatchResult, FileResult, FileState, RunContext,
)

log = logging.getLogger(__name__)

# Leading whitespace, body, trailing whitespace (full-width spaces included)
_EDGE_WS_RE = re.compile(r'^(\s*)(.*?)(\s*)$', re.DOTALL)


def split_batches(records: list, size: int) -> list:
    """Split records into consecutive slices of at most ``size``."""
    size = max(1, size)
    return [records[i:i + size] for i in range(0, len(records), size)]


def keep_layout(original: str, translated: str) -> str:
    """Give a translation the original's outer whitespace and line endings.

    The numbered protocol trims every line, so indents such as a leading
    full-width space and trailing padding are put back here.
    """
    lead, _, trail = _EDGE_WS_RE.match(original).groups()
    body = translated.strip()
    if "\r\n" in original:
        body = body.replace("\r\n", "\n").replace("\n", "\r\n")
    return lead + body + trail


def apply_translations(document, records: list) -> tuple:
    """Write every record's translation into a deep copy of ``document``.

    Returns:
        (new_document, [ApplyFailure]); failed paths keep their original.
    """
    result = copy.deepcopy(document)
    failures = []
    for record in records:
        try:
            set_value(result, record.path, record.translated)
        except PathError as e:
            log.warning("Could not apply %s: %s", record.path_string, e)
            failures.append(ApplyFailure(record.path_string, e.reason, str(e)))
    return result, failures


class TranslationPipeline:
    """Translates the text of one document, batch by batch."""

    def translate_document(self, document, filename: str, ctx: RunContext,
                           on_batch=None) -> FileResult:
        """Translate one parsed data file.

        Never mutates ``document``.  The result holds either a fully applied
        copy or, when nothing could be done, the untouched original.

        Args:
            on_batch: Optional ``callback(BatchResult, total_batches)``
                called after each batch finishes.
        """
        ctx.current_file = filename
        result = FileResult(filename=filename, state=FileState.PENDING, document=document)

        kind = rpgmaker_mv.classify(filename)
        if kind is None:
            log.warning("Unrecognised data file, left unchanged: %s", filename)
            result.state = FileState.COMPLETED
            result.reason = "unrecognised"
            ctx.stats.files_processed += 1
            return result

        try:
            result.state = FileState.LOCATING
            records = rpgmaker_mv.locate(document, kind, ctx.config)
            result.records = records
            if not records:
                log.info("%s: no text to translate", filename)
                result.state = FileState.COMPLETED
                result.reason = "no_text"
                ctx.stats.files_processed += 1
                return result

            log.info("%s: found %d text(s) [%s, %s]", filename, len(records),
                     kind.value, rpgmaker_mv.detect_engine(document))
            ctx.stats.total_texts += len(records)

            result.state = FileState.TRANSLATING
            result.batches = self._translate_batches(records, ctx, on_batch)

            result.state = FileState.APPLYING
            result.document, result.apply_failures = apply_translations(document, records)
        except (TypeError, AttributeError, KeyError, IndexError, ValueError) as e:
            log.error("%s: translation aborted, original kept: %s", filename, e)
            result.state = FileState.ERROR
            result.reason = str(e)
            result.document = document
            return result

        result.state = FileState.COMPLETED
        ctx.stats.files_processed += 1
        log.info("%s: done, %d/%d translated, %d failed batch(es), %d path failure(s)",
                 filename, result.translated_count, len(records),
                 len(result.failed_batches), len(result.apply_failures))
        return result

    def _translate_batches(self, records: list, ctx: RunContext, on_batch=None) -> list:
        batches = split_batches(records, ctx.config.batch_size)
        results = []
        for i, batch in enumerate(batches):
            if i > 0 and ctx.batch_delay > 0:
                time.sleep(ctx.batch_delay)
            if ctx.paused:
                log.info("Paused before batch %d/%d", i + 1, len(batches))
                results.extend(BatchResult(j, False, "paused")
                               for j in range(i, len(batches)))
                break

            log.info("Batch %d/%d (%d text(s))", i + 1, len(batches), len(batch))
            batch_result = self.translate_batch(batch, i, ctx)
            results.append(batch_result)
            ctx.stats.texts_translated += batch_result.applied
            if on_batch is not None:
                on_batch(batch_result, len(batches))
        return results

    def translate_batch(self, batch: list, index: int, ctx: RunContext) -> BatchResult:
        """Send one batch and fold the reply into its records.

        A failed call leaves every record at its original text; an empty
        slot in the reply leaves just that record at its original.
        """
        config = ctx.config
        request = batch_protocol.build_request(
            batch, config.source_language, config.target_language)
        try:
            completion = ctx.service.complete(request, temperature=ctx.temperature)
        except TranslationServiceError as e:
            log.warning("Batch %d failed (%s): %s, keeping originals",
                        index + 1, e.code, e)
            return BatchResult(index, False, "service_error", str(e))

        self._account_usage(completion, ctx)
        translations = batch_protocol.parse_response(completion.text, len(batch))
        if not any(translations):
            log.warning("Batch %d: empty reply, keeping originals", index + 1)
            return BatchResult(index, False, "empty_response", translations=translations)

        applied = 0
        for record, text in zip(batch, translations):
            if not text:
                continue
            if record.codes:
                found = control_codes.count_placeholders(text)
                if found != len(record.codes):
                    log.warning("%s: %d placeholder(s) for %d control code(s)",
                                record.path_string, found, len(record.codes))
                text = control_codes.restore(text, record.codes)
            record.translated = keep_layout(record.original, text)
            applied += 1
        return BatchResult(index, True, translations=translations, applied=applied)

    @staticmethod
    def _account_usage(completion, ctx: RunContext):
        stats = ctx.stats
        stats.prompt_tokens += completion.prompt_tokens
        stats.completion_tokens += completion.completion_tokens
        stats.estimated_cost += ctx.service.estimate_cost(
            completion.prompt_tokens, completion.completion_tokens)


class TranslationWorker(QObject):
    """Worker that translates a queue of data files in a background thread."""

    file_started = pyqtSignal(int, int, str)      # index, total, filename
    batch_done = pyqtSignal(str, int, int, bool)  # filename, batch, total, ok
    file_done = pyqtSignal(object)                # FileResult
    error = pyqtSignal(str, str)                  # filename, message
    finished = pyqtSignal()

    def __init__(self, ctx: RunContext, files: list, output_dir: str = ""):
        super().__init__()
        self.ctx = ctx
        self.files = files
        self.output_dir = output_dir
        self.pipeline = TranslationPipeline()
        self.results: list = []

    def run(self):
        """Process every file in order, stopping early when paused."""
        total = len(self.files)
        for i, path in enumerate(self.files):
            if self.ctx.paused:
                log.info("Paused, %d file(s) not started", total - i)
                break
            filename = os.path.basename(path)
            self.file_started.emit(i, total, filename)
            try:
                document = rpgmaker_mv.load_document(path)
            except (OSError, ValueError) as e:
                log.error("Could not read %s: %s", path, e)
                self.error.emit(filename, str(e))
                continue

            result = self.pipeline.translate_document(
                document, filename, self.ctx,
                on_batch=lambda b, n: self.batch_done.emit(filename, b.index + 1, n, b.ok))

            if result.state is FileState.ERROR:
                self.error.emit(filename, result.reason)
            elif result.records:
                try:
                    rpgmaker_mv.save_document(self.output_path(path), result.document)
                except OSError as e:
                    log.error("Could not write translation of %s: %s", path, e)
                    self.error.emit(filename, str(e))
            self.results.append(result)
            self.file_done.emit(result)

        self.finished.emit()

    def output_path(self, path: str) -> str:
        """``Map001.json`` -> ``<output_dir>/Map001_translated.json``."""
        stem, ext = os.path.splitext(os.path.basename(path))
        folder = self.output_dir or os.path.dirname(path)
        return os.path.join(folder, f"{stem}_translated{ext or '.json'}")


class TranslationEngine(QObject):
    """Owns the worker thread and relays its signals."""

    progress = pyqtSignal(int, int, str)    # current file, total, filename
    file_done = pyqtSignal(object)
    error = pyqtSignal(str, str)
    finished = pyqtSignal()

    def __init__(self, ctx: RunContext, parent=None):
        super().__init__(parent)
        self.ctx = ctx
        self._thread = None
        self._worker = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.isRunning()

    def start(self, files: list, output_dir: str = ""):
        """Start translating ``files`` on a background thread."""
        if self.is_running:
            return
        self.ctx.resume()
        self._thread = QThread()
        self._worker = TranslationWorker(self.ctx, files, output_dir)
        self._worker.moveToThread(self._thread)

        self._thread.started.connect(self._worker.run)
        self._worker.file_started.connect(self.progress.emit)
        self._worker.file_done.connect(self.file_done.emit)
        self._worker.error.connect(self.error.emit)
        self._worker.finished.connect(self._on_worker_finished)
        self._thread.start()

    def pause(self):
        """Stop at the next batch boundary; the in-flight request completes."""
        self.ctx.pause()

    @property
    def results(self) -> list:
        return self._worker.results if self._worker else []

    def _on_worker_finished(self):
        self._thread.quit()
        self._thread.wait()
        self._thread = None
        self.finished.emit()
